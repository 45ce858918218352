"""Review coverage: the share of default-branch commits that went through a reviewed pull request."""

from __future__ import annotations

import math
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from project_health.libs.exceptions import SchemaMismatchError
from project_health.libs.graphql.graphql_queries import (
    PULL_REQUEST_COMMITS_QUERY,
    REPO_COMMITS_QUERY,
    REPO_PRS_COMMITS_QUERY,
)
from project_health.libs.metrics.common import (
    NO_DATA,
    MetricResult,
    get_reviews_for_pull_request,
    resolve_repos,
)

if TYPE_CHECKING:
    from project_health.libs.graphql.graphql_client import GraphQLClient


@dataclass(frozen=True)
class Commit:
    oid: str
    committed_date: str

    @classmethod
    def from_node(cls, node: dict[str, Any]) -> Commit:
        return cls(oid=node["oid"], committed_date=node["committedDate"])


@dataclass(frozen=True)
class ReviewedCommit:
    commit: Commit
    reviewed: bool


class ReviewedCommitSet:
    """Oids of commits belonging to a reviewed pull request."""

    def __init__(self, commits: Iterable[Commit | str] = ()) -> None:
        self._oids: set[str] = set()
        self.update(commits)

    def add(self, commit: Commit | str) -> None:
        self._oids.add(commit.oid if isinstance(commit, Commit) else commit)

    def update(self, commits: Iterable[Commit | str]) -> None:
        for commit in commits:
            self.add(commit)

    def __contains__(self, oid: object) -> bool:
        return oid in self._oids

    def __len__(self) -> int:
        return len(self._oids)

    def __iter__(self) -> Iterator[str]:
        return iter(self._oids)


class ReviewCoverageResult(MetricResult):
    def __init__(self, commits: Iterable[Commit], reviewed_commits: ReviewedCommitSet) -> None:
        self.commits: tuple[ReviewedCommit, ...] = tuple(
            ReviewedCommit(commit=commit, reviewed=commit.oid in reviewed_commits) for commit in commits
        )

    def num_reviewed(self) -> int:
        return sum(1 for commit in self.commits if commit.reviewed)

    def coverage(self) -> int | None:
        """Reviewed commits as a rounded percentage, None without commits."""
        if not self.commits:
            return None
        # Halves round up
        return math.floor(self.num_reviewed() / len(self.commits) * 100 + 0.5)

    def summary(self) -> str:
        coverage = self.coverage()
        coverage_str = NO_DATA if coverage is None else f"{coverage}%"
        return (
            f"There are {len(self.commits)} commits of which {self.num_reviewed()} are reviewed.\n"
            f"Review coverage is {coverage_str}."
        )

    def raw_data(self) -> list[dict[str, Any]]:
        return [
            {
                "oid": reviewed.commit.oid,
                "committedDate": reviewed.commit.committed_date,
                "reviewed": reviewed.reviewed,
            }
            for reviewed in self.commits
        ]


async def get_review_coverage(
    client: GraphQLClient, org: str, repo: str | None = None, since: str | None = None
) -> ReviewCoverageResult:
    """
    Compute how much of an org or repository is reviewed.

    Args:
        client: GraphQL client
        org: GitHub organization
        repo: Restrict to a single repository
        since: ISO-8601 date, ignore default-branch commits before it
    """
    commits: list[Commit] = []
    reviewed_commits = ReviewedCommitSet()

    for target in await resolve_repos(client, org, repo):
        reviewed_commits.update(await get_pr_commits_for_repo(client, target.owner, target.name))
        commits.extend(await get_default_branch_commits(client, target.owner, target.name, since))

    # Commits are flagged against the reviewed commits of every repository measured
    return ReviewCoverageResult(commits, reviewed_commits)


def _commit_history(data: dict[str, Any]) -> dict[str, Any] | None:
    repository = data.get("repository")
    if not repository or not repository.get("defaultBranchRef"):
        return None

    target = repository["defaultBranchRef"]["target"]
    if target.get("__typename") != "Commit":
        raise SchemaMismatchError(
            f"Expected default branch ref to point to a Commit, got {target.get('__typename')}"
        )
    return target["history"]


async def get_default_branch_commits(
    client: GraphQLClient, owner: str, name: str, since: str | None = None
) -> list[Commit]:
    """All commits on the default branch, optionally since an ISO-8601 date."""
    variables: dict[str, Any] = {"owner": owner, "name": name}
    if since:
        variables["since"] = since

    commits: list[Commit] = []
    async for data in client.cursor_query(REPO_COMMITS_QUERY, variables, _commit_history):
        history = _commit_history(data)
        if not history:
            continue
        for node in history["nodes"] or []:
            if node:
                commits.append(Commit.from_node(node))
    return commits


async def get_pr_commits_for_repo(client: GraphQLClient, owner: str, name: str) -> ReviewedCommitSet:
    """Commits of every reviewed pull request in a repository, merge commits included."""

    def page_info(data: dict[str, Any]) -> dict[str, Any] | None:
        repository = data.get("repository")
        return repository["pullRequests"] if repository else None

    reviewed = ReviewedCommitSet()
    async for data in client.cursor_query(REPO_PRS_COMMITS_QUERY, {"owner": owner, "name": name}, page_info):
        repository = data.get("repository")
        if not repository:
            continue

        for pr in repository["pullRequests"]["nodes"] or []:
            if not pr or not get_reviews_for_pull_request(pr):
                continue

            if pr.get("mergeCommit"):
                reviewed.add(Commit.from_node(pr["mergeCommit"]))

            for pr_commit in pr["commits"]["nodes"] or []:
                if pr_commit:
                    reviewed.add(Commit.from_node(pr_commit["commit"]))

            # Only the first slice of commits came with the pull request
            if pr["commits"]["pageInfo"]["hasNextPage"]:
                reviewed.update(await get_full_commits_for_pr(client, pr["id"]))

    return reviewed


def _pull_request_commits(data: dict[str, Any]) -> dict[str, Any] | None:
    node = data.get("node")
    if not node or node.get("__typename") != "PullRequest":
        return None
    return node["commits"]


async def get_full_commits_for_pr(client: GraphQLClient, pr_id: str) -> list[Commit]:
    """Every commit of a pull request given by node id. Does not include the merge commit."""
    commits: list[Commit] = []
    async for data in client.cursor_query(PULL_REQUEST_COMMITS_QUERY, {"id": pr_id}, _pull_request_commits):
        pr_commits = _pull_request_commits(data)
        if not pr_commits:
            continue
        for pr_commit in pr_commits["nodes"] or []:
            if pr_commit:
                commits.append(Commit.from_node(pr_commit["commit"]))
    return commits
