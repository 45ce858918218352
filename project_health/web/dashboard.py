"""Dashboard controller: pull requests authored by and awaiting review from a user."""

from __future__ import annotations

import logging
from typing import Any

from project_health.libs.graphql.graphql_client import GraphQLClient
from project_health.libs.graphql.graphql_queries import VIEWER_LOGIN_QUERY, VIEWER_PULL_REQUESTS_QUERY
from project_health.libs.metrics.common import parse_github_datetime

STATUS_STATES: dict[str, str] = {
    "SUCCESS": "passed",
    "PENDING": "pending",
    "EXPECTED": "pending",
    "FAILURE": "failed",
    "ERROR": "failed",
}


class DashboardController:
    """
    Builds the `/dash.json` payload for the user owning a token.

    Response Format:
        {
            "prs": [
                {
                    "repository": "org/repo",
                    "title": "Fix things",
                    "number": 12,
                    "prUrl": "https://github.com/org/repo/pull/12",
                    "author": "octocat",
                    "createdAt": 1504548083000,
                    "avatarUrl": "https://...",
                    "approvedBy": ["reviewer1"],
                    "changesRequestedBy": [],
                    "commentedBy": [],
                    "pendingReviews": ["reviewer2"],
                    "statusState": "passed"
                }
            ],
            "incomingReviews": [...]
        }
    """

    def __init__(self, client: GraphQLClient, logger: logging.Logger) -> None:
        self.client = client
        self.logger = logger

    async def fetch_user_data(self, token: str) -> dict[str, Any]:
        login_result = await self.client.execute(VIEWER_LOGIN_QUERY, token=token)
        login = login_result["viewer"]["login"]
        incoming_reviews_query = f"is:open is:pr review-requested:{login} archived:false"

        result = await self.client.execute(
            VIEWER_PULL_REQUESTS_QUERY,
            variables={"login": login, "query": incoming_reviews_query},
            token=token,
        )
        self.logger.debug(f"Dashboard query for {login} cost {(result.get('rateLimit') or {}).get('cost')}")

        prs = []
        if result.get("user"):
            for pr in result["user"]["pullRequests"]["nodes"] or []:
                if pr:
                    prs.append(self.convert_pull_request(pr))

        incoming_reviews = []
        for node in (result.get("incomingReviews") or {}).get("nodes") or []:
            if node and node.get("__typename") == "PullRequest":
                incoming_reviews.append(self.convert_pull_request(node))

        return {"prs": prs, "incomingReviews": incoming_reviews}

    @staticmethod
    def convert_pull_request(pr: dict[str, Any]) -> dict[str, Any]:
        converted: dict[str, Any] = {
            "repository": pr["repository"]["nameWithOwner"],
            "title": pr["title"],
            "number": pr["number"],
            "prUrl": pr["url"],
            "author": "",
            "createdAt": int(parse_github_datetime(pr["createdAt"]).timestamp() * 1000),
            "avatarUrl": "",
            "approvedBy": [],
            "changesRequestedBy": [],
            "commentedBy": [],
            "pendingReviews": [],
            "statusState": "passed",
        }

        author = pr.get("author")
        if author and author.get("__typename") == "User":
            converted["author"] = author["login"]
            converted["avatarUrl"] = author["avatarUrl"]

        # Latest approval or change request per reviewer wins, comments never override them
        review_states: dict[str, str] = {}
        for review in (pr.get("reviews") or {}).get("nodes") or []:
            if not review or not review.get("author"):
                continue
            reviewer = review["author"]["login"]
            state = review["state"]
            if state == "COMMENTED" and reviewer in review_states:
                continue
            if state in ("APPROVED", "CHANGES_REQUESTED", "COMMENTED"):
                review_states[reviewer] = state

        for reviewer, state in review_states.items():
            if state == "APPROVED":
                converted["approvedBy"].append(reviewer)
            elif state == "CHANGES_REQUESTED":
                converted["changesRequestedBy"].append(reviewer)
            else:
                converted["commentedBy"].append(reviewer)

        for request in (pr.get("reviewRequests") or {}).get("nodes") or []:
            reviewer = (request or {}).get("requestedReviewer")
            if reviewer and reviewer.get("__typename") == "User":
                converted["pendingReviews"].append(reviewer["login"])

        commits = (pr.get("commits") or {}).get("nodes") or []
        if commits and commits[-1]:
            status = commits[-1]["commit"].get("status")
            if status:
                converted["statusState"] = STATUS_STATES.get(status["state"], "passed")

        return converted
