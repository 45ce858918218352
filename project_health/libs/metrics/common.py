"""Helpers shared by the metric aggregators."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from project_health.libs.exceptions import MetricArgumentError
from project_health.libs.graphql.graphql_queries import ORG_REPOS_QUERY

if TYPE_CHECKING:
    from project_health.libs.graphql.graphql_client import GraphQLClient

# Shown instead of a percentage or average when there is nothing to divide by.
NO_DATA = "no data"

REVIEW_STATES = frozenset({"APPROVED", "CHANGES_REQUESTED", "COMMENTED"})


@dataclass(frozen=True)
class Repo:
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


class MetricResult(ABC):
    """Result of a metric computation, rendered by the CLI and the HTTP API."""

    @abstractmethod
    def summary(self) -> str: ...

    @abstractmethod
    def raw_data(self) -> Any: ...


def parse_github_datetime(value: str) -> datetime:
    """Parse a GitHub ISO-8601 timestamp such as `2017-09-04T18:01:23Z`. Naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def validate_since(since: str | None) -> str | None:
    """
    Check a user supplied `since` date before any query is issued.

    Raises:
        MetricArgumentError: If `since` is not an ISO-8601 date
    """
    if not since:
        return None

    try:
        parse_github_datetime(since)
    except ValueError as ex:
        raise MetricArgumentError(f"Invalid since date: {since!r}. Expected an ISO-8601 date such as 2017-01-01") from ex
    return since


async def get_org_repos(client: GraphQLClient, org: str) -> list[Repo]:
    """
    List every repository of an organization.

    Returns an empty list when the organization does not exist.
    """

    def page_info(data: dict[str, Any]) -> dict[str, Any] | None:
        organization = data.get("organization")
        return organization["repositories"] if organization else None

    repos: list[Repo] = []
    async for data in client.cursor_query(ORG_REPOS_QUERY, {"login": org}, page_info):
        organization = data.get("organization")
        if not organization:
            continue
        for node in organization["repositories"]["nodes"] or []:
            if node:
                repos.append(Repo(owner=node["owner"]["login"], name=node["name"]))
    return repos


async def resolve_repos(client: GraphQLClient, org: str, repo: str | None = None) -> list[Repo]:
    """
    Repositories a metric runs over.

    Args:
        client: GraphQL client
        org: Organization (or user) owning the repositories
        repo: Narrow to a single repository, given as `name` or `owner/name`
    """
    if repo:
        if "/" in repo:
            owner, name = repo.split("/", 1)
            return [Repo(owner=owner, name=name)]
        return [Repo(owner=org, name=repo)]

    return await get_org_repos(client, org)


def get_reviews_for_pull_request(pr: dict[str, Any]) -> list[dict[str, Any]]:
    """
    Substantive reviews of a pull request.

    Keeps approvals, change requests and comments. Reviews by the pull request
    author do not count. Review nodes fetched without a `state` field were
    filtered by state in the query itself.
    """
    reviews_container = pr.get("reviews") or {}
    pr_author = (pr.get("author") or {}).get("login")

    reviews = []
    for review in reviews_container.get("nodes") or []:
        if not review:
            continue
        if "state" in review and review["state"] not in REVIEW_STATES:
            continue
        review_author = (review.get("author") or {}).get("login")
        if pr_author and review_author == pr_author:
            continue
        reviews.append(review)
    return reviews
