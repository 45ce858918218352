"""Issue counts: issues opened and closed over time."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from project_health.libs.graphql.graphql_queries import REPO_ISSUES_QUERY
from project_health.libs.metrics.common import NO_DATA, MetricResult, parse_github_datetime, resolve_repos

if TYPE_CHECKING:
    from project_health.libs.graphql.graphql_client import GraphQLClient


@dataclass(frozen=True)
class Issue:
    created_at: datetime
    closed_at: datetime | None = None

    @classmethod
    def from_node(cls, node: dict[str, Any]) -> Issue:
        closed_at = node.get("closedAt")
        return cls(
            created_at=parse_github_datetime(node["createdAt"]),
            closed_at=parse_github_datetime(closed_at) if closed_at else None,
        )


@dataclass(frozen=True)
class TimeSeriesPoint:
    date: date
    num_opened: int
    num_closed: int


class IssueCountResult(MetricResult):
    def __init__(self, issues: list[Issue]) -> None:
        self.issues = issues

    def num_closed(self) -> int:
        return sum(1 for issue in self.issues if issue.closed_at is not None)

    def summary(self) -> str:
        if not self.issues:
            return f"There are no issues: {NO_DATA}."
        num_closed = self.num_closed()
        return (
            f"There are {len(self.issues)} issues. "
            f"{len(self.issues) - num_closed} are open and {num_closed} are closed."
        )

    def time_series(self) -> list[TimeSeriesPoint]:
        """Issues opened and closed per UTC day, for days with any activity, oldest first."""
        opened = Counter(issue.created_at.date() for issue in self.issues)
        closed = Counter(issue.closed_at.date() for issue in self.issues if issue.closed_at is not None)
        return [
            TimeSeriesPoint(date=day, num_opened=opened[day], num_closed=closed[day])
            for day in sorted(opened.keys() | closed.keys())
        ]

    def raw_data(self) -> list[dict[str, Any]]:
        return [
            {"date": point.date.isoformat(), "numOpened": point.num_opened, "numClosed": point.num_closed}
            for point in self.time_series()
        ]


async def get_issue_counts(
    client: GraphQLClient, org: str, repo: str | None = None, since: str | None = None
) -> IssueCountResult:
    """
    Collect every issue of an org or repository.

    Args:
        client: GraphQL client
        org: GitHub organization
        repo: Restrict to a single repository
        since: ISO-8601 date, ignore issues opened before it
    """
    since_dt = parse_github_datetime(since) if since else None

    def page_info(data: dict[str, Any]) -> dict[str, Any] | None:
        repository = data.get("repository")
        return repository["issues"] if repository else None

    issues: list[Issue] = []
    for target in await resolve_repos(client, org, repo):
        variables = {"owner": target.owner, "name": target.name}
        async for data in client.cursor_query(REPO_ISSUES_QUERY, variables, page_info):
            repository = data.get("repository")
            if not repository:
                continue
            for node in repository["issues"]["nodes"] or []:
                if not node:
                    continue
                issue = Issue.from_node(node)
                if since_dt and issue.created_at < since_dt:
                    continue
                issues.append(issue)

    return IssueCountResult(issues)
