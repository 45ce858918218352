"""GraphQL client wrapper for GitHub API with authentication and error handling."""

from __future__ import annotations

import asyncio
import logging
import random
import re
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import aiohttp
from gql import Client, gql
from gql.transport.aiohttp import AIOHTTPTransport
from gql.transport.exceptions import (
    TransportError,
    TransportQueryError,
    TransportServerError,
)
from graphql import DocumentNode

from project_health.libs.graphql.cursor_fetcher import PageCursorFetcher
from project_health.libs.graphql.graphql_queries import RATE_LIMIT_QUERY


class GraphQLError(Exception):
    """Base exception for GraphQL client errors."""

    pass


class GraphQLAuthenticationError(GraphQLError):
    """Raised when authentication fails."""

    pass


class GraphQLRateLimitError(GraphQLError):
    """Raised when rate limit is exceeded."""

    pass


class GraphQLClient:
    """
    Async GraphQL client wrapper for GitHub API.

    Provides:
    - Token-based authentication, with an optional per-request token override
    - Retry with exponential backoff for server errors and dropped connections
    - Cursor-following pagination through `cursor_query`

    Query errors reported by the API are never retried.

    Example:
        >>> async with GraphQLClient(token="ghp_...", logger=logger) as client:
        ...     result = await client.execute("query { viewer { login } }")
        ...     print(result["viewer"]["login"])
    """

    GITHUB_GRAPHQL_URL = "https://api.github.com/graphql"

    def __init__(
        self,
        token: str,
        logger: logging.Logger,
        retry_count: int = 3,
        timeout: int = 90,
        connection_timeout: int = 10,
        sock_read_timeout: int = 30,
    ) -> None:
        """
        Initialize GraphQL client.

        Args:
            token: GitHub personal access token or OAuth token
            logger: Logger instance for operation logging
            retry_count: Number of attempts for server errors and dropped connections (default: 3)
            timeout: Total request timeout in seconds (default: 90)
            connection_timeout: DNS resolution + TCP handshake timeout in seconds (default: 10)
            sock_read_timeout: Socket read timeout in seconds (default: 30)
        """
        self.token = token
        self.logger = logger
        self.retry_count = max(1, retry_count)
        self.timeout = timeout
        self.connection_timeout = connection_timeout
        self.sock_read_timeout = sock_read_timeout
        self._client: Client | None = None
        self._session: Any = None
        self._transport: AIOHTTPTransport | None = None
        self._client_lock = asyncio.Lock()

    async def __aenter__(self) -> GraphQLClient:
        """Async context manager entry."""
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    def _build_transport(self, token: str) -> AIOHTTPTransport:
        timeout_config = aiohttp.ClientTimeout(
            total=self.timeout,
            connect=self.connection_timeout,
            sock_read=self.sock_read_timeout,
        )
        return AIOHTTPTransport(
            url=self.GITHUB_GRAPHQL_URL,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github.v4+json",
                "User-Agent": "project-health/graphql-client",
            },
            ssl=True,
            client_session_args={"timeout": timeout_config},
        )

    async def _ensure_client(self) -> None:
        """Ensure the GraphQL client is initialized and connected. Reuses existing client for connection pooling."""
        async with self._client_lock:
            if self._client is not None:
                return

            self._transport = self._build_transport(self.token)
            self._client = Client(
                transport=self._transport,
                fetch_schema_from_transport=False,
            )
            self._session = await self._client.connect_async()

            self.logger.debug("GraphQL client initialized with persistent connection pooling")

    async def _reset_client(self) -> None:
        if self._client:
            try:
                await self._client.close_async()
            except Exception:
                self.logger.debug("Ignoring error during client close after connection failure")
        self._client = None
        self._session = None
        self._transport = None

    async def close(self) -> None:
        """Close the GraphQL client and cleanup resources."""
        if self._client:
            try:
                await self._client.close_async()
            except Exception as ex:
                self.logger.debug(f"Ignoring error during client close: {ex}")
            self._client = None
            self._session = None
            self._transport = None
            self.logger.debug("GraphQL client closed")

    async def _execute_once(
        self, query: DocumentNode, variables: dict[str, Any] | None, token: str | None
    ) -> dict[str, Any]:
        if token and token != self.token:
            # Queries on behalf of another user get their own short-lived session
            async with Client(
                transport=self._build_transport(token), fetch_schema_from_transport=False
            ) as session:
                return await session.execute(query, variable_values=variables)

        await self._ensure_client()
        return await self._session.execute(query, variable_values=variables)

    async def execute(
        self,
        query: str | DocumentNode,
        variables: dict[str, Any] | None = None,
        token: str | None = None,
    ) -> dict[str, Any]:
        """
        Execute a GraphQL query.

        Args:
            query: GraphQL query string or DocumentNode
            variables: Variables for the query (optional)
            token: Token to run this request with instead of the client token (optional)

        Returns:
            Query result as a dictionary

        Raises:
            GraphQLAuthenticationError: If authentication fails
            GraphQLRateLimitError: If rate limit is exceeded
            GraphQLError: For other GraphQL errors
        """
        if isinstance(query, str):
            query = gql(query)

        for attempt in range(self.retry_count):
            try:
                self.logger.debug(f"Executing GraphQL query with variables {variables}")
                result = await self._execute_once(query, variables, token)
                self.logger.debug("GraphQL query executed successfully")
                return dict(result) if result else {}

            except TransportQueryError as error:
                error_msg = error.errors[0] if error.errors else str(error)
                error_str = str(error_msg)

                if "401" in error_str or "Unauthorized" in error_str or "Bad credentials" in error_str:
                    self.logger.error(f"AUTH FAILED: GraphQL authentication failed: {error_msg}")
                    raise GraphQLAuthenticationError(f"Authentication failed: {error_msg}") from error

                if "rate limit" in error_str.lower() or "RATE_LIMITED" in error_str:
                    await self._log_rate_limit_reset()
                    raise GraphQLRateLimitError(f"Rate limit exceeded: {error_msg}") from error

                self.logger.error(f"GraphQL query error: {error_msg}")
                raise GraphQLError(f"GraphQL query failed: {error_msg}") from error

            except TransportServerError as error:
                error_msg = str(error)
                status_code = getattr(error, "code", None)
                if status_code is None:
                    # Format: "403, message='Forbidden', url='...'"
                    match = re.search(r"(\d{3})", error_msg)
                    if match:
                        status_code = int(match.group(1))

                if status_code in (401, 403) and "credentials" in error_msg.lower():
                    raise GraphQLAuthenticationError(f"Authentication failed: {error_msg}") from error

                if attempt < self.retry_count - 1:
                    # Jitter reduces retry stampedes under 5xx bursts
                    wait_seconds = (2**attempt) + random.uniform(0, 1)
                    self.logger.warning(
                        f"SERVER ERROR: GraphQL server error (attempt {attempt + 1}/{self.retry_count}): {error_msg}. "
                        f"Retrying in {wait_seconds:.1f}s...",
                    )
                    await asyncio.sleep(wait_seconds)
                    continue

                self.logger.error(f"SERVER ERROR: GraphQL server error after {self.retry_count} attempts: {error_msg}")
                raise GraphQLError(f"GraphQL server error: {error_msg}") from error

            except TransportError as error:
                error_msg = str(error)
                await self._reset_client()
                if attempt < self.retry_count - 1:
                    self.logger.warning(
                        f"CONNECTION CLOSED: GraphQL connection closed "
                        f"(attempt {attempt + 1}/{self.retry_count}): {error_msg}. "
                        f"Recreating client and retrying...",
                    )
                    await asyncio.sleep(1)
                    continue

                self.logger.error(
                    f"CONNECTION CLOSED: GraphQL connection closed after {self.retry_count} attempts: {error_msg}"
                )
                raise GraphQLError(f"GraphQL connection closed: {error_msg}") from error

            except TimeoutError as error:
                await self._reset_client()
                self.logger.error(
                    f"TIMEOUT: GraphQL query timeout "
                    f"(total={self.timeout}s, connect={self.connection_timeout}s, sock_read={self.sock_read_timeout}s)",
                )
                raise GraphQLError(
                    f"GraphQL query timeout (configured: total={self.timeout}s, "
                    f"connect={self.connection_timeout}s, sock_read={self.sock_read_timeout}s)"
                ) from error

            except asyncio.CancelledError:
                self.logger.debug("GraphQL query cancelled")
                raise

            except aiohttp.ClientError as error:
                self.logger.error(f"HTTP error during GraphQL query: {error}")
                raise GraphQLError(f"GraphQL request failed: {error}") from error

        raise GraphQLError("Failed to execute query after all retries")

    async def _log_rate_limit_reset(self) -> None:
        """Log when the rate limit resets. Best effort, bypasses retry logic."""
        if not self._session:
            self.logger.error("RATE LIMIT: GraphQL rate limit exceeded")
            return

        try:
            rate_result = await self._session.execute(gql(RATE_LIMIT_QUERY))
            reset_at = rate_result["rateLimit"]["resetAt"]
            reset_timestamp = datetime.fromisoformat(reset_at.replace("Z", "+00:00")).timestamp()
            wait_seconds = int(reset_timestamp - datetime.now(UTC).timestamp())
            self.logger.error(
                f"RATE LIMIT: GraphQL rate limit exceeded, resets in {wait_seconds}s "
                f"at {datetime.fromtimestamp(reset_timestamp, tz=UTC)}"
            )
        except Exception:
            self.logger.exception("Failed to get rate limit info")

    def cursor_query(
        self,
        query: str | DocumentNode,
        variables: dict[str, Any],
        page_info_selector: Callable[[dict[str, Any]], dict[str, Any] | None],
    ) -> PageCursorFetcher:
        """
        Run a paginated query as a lazy sequence of responses.

        Args:
            query: GraphQL document declaring a `$cursor: String` variable
            variables: Variables for the query, without `cursor`
            page_info_selector: Returns the `{endCursor, hasNextPage}` container of a response,
                or None when the paginated field is absent

        Returns:
            PageCursorFetcher yielding whole responses, one request per page
        """
        if isinstance(query, str):
            query = gql(query)

        return PageCursorFetcher(
            execute=self.execute,
            query=query,
            variables=variables,
            page_info_selector=page_info_selector,
        )

    async def get_rate_limit(self) -> dict[str, Any]:
        """
        Get current rate limit information.

        Returns:
            Dictionary with rate limit info: limit, remaining, resetAt
        """
        result = await self.execute(RATE_LIMIT_QUERY)
        return result["rateLimit"]
