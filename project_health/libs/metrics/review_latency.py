"""Review latency: time from opening a pull request to its first substantive review."""

from __future__ import annotations

import statistics
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from project_health.libs.graphql.graphql_queries import REPO_PRS_REVIEWS_QUERY
from project_health.libs.metrics.common import (
    NO_DATA,
    MetricResult,
    get_reviews_for_pull_request,
    parse_github_datetime,
    resolve_repos,
)

if TYPE_CHECKING:
    from project_health.libs.graphql.graphql_client import GraphQLClient


@dataclass(frozen=True)
class PullRequestLatency:
    url: str
    created_at: datetime
    first_review_at: datetime

    @property
    def latency(self) -> timedelta:
        return self.first_review_at - self.created_at


def format_duration(delta: timedelta) -> str:
    """Render a duration as days and hours, or minutes below one hour."""
    total_minutes = int(delta.total_seconds() // 60)
    if total_minutes < 60:
        return f"{total_minutes} minutes"

    days, remainder = divmod(total_minutes, 60 * 24)
    hours = remainder // 60
    if days:
        return f"{days} days {hours} hours"
    return f"{hours} hours"


class ReviewLatencyResult(MetricResult):
    def __init__(self, latencies: list[PullRequestLatency]) -> None:
        self.latencies = sorted(latencies, key=lambda pr: pr.created_at)

    def mean(self) -> timedelta | None:
        if not self.latencies:
            return None
        return timedelta(seconds=statistics.fmean(pr.latency.total_seconds() for pr in self.latencies))

    def median(self) -> timedelta | None:
        if not self.latencies:
            return None
        return timedelta(seconds=statistics.median(pr.latency.total_seconds() for pr in self.latencies))

    def format(self) -> str:
        mean = self.mean()
        median = self.median()
        return (
            f"There are {len(self.latencies)} reviewed pull requests.\n"
            f"Average time to first review is {NO_DATA if mean is None else format_duration(mean)}.\n"
            f"Median time to first review is {NO_DATA if median is None else format_duration(median)}."
        )

    def summary(self) -> str:
        return self.format()

    def raw_data(self) -> list[dict[str, Any]]:
        return [
            {
                "url": pr.url,
                "createdAt": pr.created_at.isoformat(),
                "firstReviewAt": pr.first_review_at.isoformat(),
                "latencyMs": int(pr.latency.total_seconds() * 1000),
            }
            for pr in self.latencies
        ]

    def time_series(self) -> list[tuple[datetime, timedelta]]:
        """(creation date, latency) per reviewed pull request, oldest first."""
        return [(pr.created_at, pr.latency) for pr in self.latencies]


def get_pull_request_latency(pr: dict[str, Any]) -> PullRequestLatency | None:
    """Latency of one pull request node, None when it has no qualifying review."""
    review_times = [
        parse_github_datetime(review.get("submittedAt") or review["createdAt"])
        for review in get_reviews_for_pull_request(pr)
        if review.get("submittedAt") or review.get("createdAt")
    ]
    if not review_times:
        return None

    return PullRequestLatency(
        url=pr.get("url", ""),
        created_at=parse_github_datetime(pr["createdAt"]),
        first_review_at=min(review_times),
    )


async def get_review_latency(
    client: GraphQLClient, org: str, repo: str | None = None, since: str | None = None
) -> ReviewLatencyResult:
    """
    Measure time to first review across an org or repository.

    Args:
        client: GraphQL client
        org: GitHub organization
        repo: Restrict to a single repository
        since: ISO-8601 date, ignore pull requests opened before it
    """
    since_dt = parse_github_datetime(since) if since else None

    def page_info(data: dict[str, Any]) -> dict[str, Any] | None:
        repository = data.get("repository")
        return repository["pullRequests"] if repository else None

    latencies: list[PullRequestLatency] = []
    for target in await resolve_repos(client, org, repo):
        variables = {"owner": target.owner, "name": target.name}
        async for data in client.cursor_query(REPO_PRS_REVIEWS_QUERY, variables, page_info):
            repository = data.get("repository")
            if not repository:
                continue
            for pr in repository["pullRequests"]["nodes"] or []:
                if not pr:
                    continue
                latency = get_pull_request_latency(pr)
                if latency is None:
                    continue
                if since_dt and latency.created_at < since_dt:
                    continue
                latencies.append(latency)

    return ReviewLatencyResult(latencies)
