"""Scripted GitHub GraphQL responses for metric and pagination tests."""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any

from project_health.libs.graphql.cursor_fetcher import PageCursorFetcher

Route = Callable[[dict[str, Any]], dict[str, Any]]
Wrapper = Callable[[list[Any], dict[str, Any]], dict[str, Any]]


class FakeGraphQLClient:
    """
    Stand-in for GraphQLClient answering queries by operation name.

    Every executed request is recorded as (operation name, variables) in `calls`.
    """

    def __init__(self, routes: dict[str, Route], token: str = "test-token") -> None:
        self.routes = routes
        self.token = token
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def execute(
        self, query: Any, variables: dict[str, Any] | None = None, token: str | None = None
    ) -> dict[str, Any]:
        operation = re.search(r"query\s+(\w+)", str(query)).group(1)
        self.calls.append((operation, dict(variables or {})))
        return self.routes[operation](variables or {})

    def cursor_query(self, query: Any, variables: dict[str, Any], page_info_selector: Any) -> PageCursorFetcher:
        return PageCursorFetcher(self.execute, query, variables, page_info_selector)

    def calls_for(self, operation: str) -> list[dict[str, Any]]:
        return [variables for name, variables in self.calls if name == operation]


def cursor_index(cursor: str | None) -> int:
    """Index of the page requested with `cursor`, cursors are `cursor-<previous index>`."""
    if cursor is None:
        return 0
    return int(cursor.split("-")[1]) + 1


def paginated(node_pages: list[list[Any]], wrap: Wrapper) -> Route:
    """Serve `node_pages` one page per request, following the cursor variable."""

    def route(variables: dict[str, Any]) -> dict[str, Any]:
        index = cursor_index(variables.get("cursor"))
        page_info = {"endCursor": f"cursor-{index}", "hasNextPage": index < len(node_pages) - 1}
        return wrap(node_pages[index], page_info)

    return route


def by_repo(routes: dict[str, Route]) -> Route:
    """Dispatch on `owner/name` of the request variables. Unknown repositories do not exist."""

    def route(variables: dict[str, Any]) -> dict[str, Any]:
        key = f"{variables['owner']}/{variables['name']}"
        if key not in routes:
            return {"repository": None}
        return routes[key](variables)

    return route


def by_pr_id(routes: dict[str, Route]) -> Route:
    def route(variables: dict[str, Any]) -> dict[str, Any]:
        return routes[variables["id"]](variables)

    return route


def commit(oid: str, committed_date: str = "2017-09-01T10:00:00Z") -> dict[str, Any]:
    return {"oid": oid, "committedDate": committed_date}


def history_response(nodes: list[Any], page_info: dict[str, Any]) -> dict[str, Any]:
    return {
        "repository": {
            "defaultBranchRef": {
                "target": {"__typename": "Commit", "history": {"pageInfo": page_info, "nodes": nodes}}
            }
        }
    }


def pull_requests_response(nodes: list[Any], page_info: dict[str, Any]) -> dict[str, Any]:
    return {"repository": {"pullRequests": {"pageInfo": page_info, "nodes": nodes}}}


def pull_request_commits_response(nodes: list[Any], page_info: dict[str, Any]) -> dict[str, Any]:
    return {
        "node": {
            "__typename": "PullRequest",
            "commits": {"pageInfo": page_info, "nodes": [{"commit": node} for node in nodes]},
        }
    }


def issues_response(nodes: list[Any], page_info: dict[str, Any]) -> dict[str, Any]:
    return {"repository": {"issues": {"pageInfo": page_info, "nodes": nodes}}}


def org_repos_response(nodes: list[Any], page_info: dict[str, Any]) -> dict[str, Any]:
    return {"organization": {"repositories": {"pageInfo": page_info, "nodes": nodes}}}


def pull_request(
    pr_id: str,
    commits: list[dict[str, Any]],
    reviews: list[dict[str, Any]] | None = None,
    merge_commit: dict[str, Any] | None = None,
    more_commits: bool = False,
    author: str = "author",
    created_at: str = "2017-09-01T10:00:00Z",
) -> dict[str, Any]:
    return {
        "id": pr_id,
        "url": f"https://github.com/org/repo/pull/{pr_id}",
        "author": {"login": author},
        "createdAt": created_at,
        "reviews": {"nodes": reviews or []},
        "mergeCommit": merge_commit,
        "commits": {
            "pageInfo": {"hasNextPage": more_commits},
            "nodes": [{"commit": node} for node in commits],
        },
    }


def review(
    state: str = "APPROVED",
    author: str = "reviewer",
    submitted_at: str | None = "2017-09-01T12:00:00Z",
    created_at: str | None = None,
) -> dict[str, Any]:
    node: dict[str, Any] = {"author": {"login": author}, "state": state, "submittedAt": submitted_at}
    if created_at:
        node["createdAt"] = created_at
    return node
