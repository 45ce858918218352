"""Cursor-following pagination over a single GraphQL connection field."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from graphql import DocumentNode

PageInfoSelector = Callable[[dict[str, Any]], dict[str, Any] | None]
QueryExecutor = Callable[[DocumentNode, dict[str, Any]], Awaitable[dict[str, Any]]]


class PageCursorFetcher:
    """
    Lazy, forward-only sequence of responses to a paginated query.

    Each `__anext__` issues exactly one request. The first request carries the
    caller's variables without a `cursor`; every following request carries the
    previous page's `endCursor` as `cursor`. Whole responses are yielded since
    the position of the result nodes depends on the query shape.

    The sequence ends after a page whose `hasNextPage` is false, or whose
    pagination container cannot be found by `page_info_selector` (for example
    when the repository does not exist). A failed request ends the sequence
    as well; pages yielded before the failure stay valid.

    Example:
        >>> fetcher = PageCursorFetcher(client.execute, query, {"owner": "o", "name": "n"},
        ...                             lambda data: data["repository"] and data["repository"]["issues"]["pageInfo"])
        >>> async for page in fetcher:
        ...     handle(page)
    """

    def __init__(
        self,
        execute: QueryExecutor,
        query: DocumentNode,
        variables: dict[str, Any],
        page_info_selector: PageInfoSelector,
    ) -> None:
        self._execute = execute
        self._query = query
        self._variables = {key: value for key, value in variables.items() if key != "cursor"}
        self._page_info_selector = page_info_selector
        self.cursor: str | None = None
        self.done = False
        self.pages_fetched = 0

    def __aiter__(self) -> PageCursorFetcher:
        return self

    async def __anext__(self) -> dict[str, Any]:
        if self.done:
            raise StopAsyncIteration

        variables = dict(self._variables)
        if self.cursor is not None:
            variables["cursor"] = self.cursor

        try:
            response = await self._execute(self._query, variables)
            self.pages_fetched += 1
            self._advance(response)
        except BaseException:
            self.done = True
            raise

        return response

    def _advance(self, response: dict[str, Any]) -> None:
        page_info = self._page_info_selector(response)
        if not page_info:
            self.done = True
            return

        if "pageInfo" in page_info:
            page_info = page_info["pageInfo"]

        if page_info.get("hasNextPage") and page_info.get("endCursor"):
            self.cursor = page_info["endCursor"]
        else:
            self.done = True

    async def collect(self) -> list[dict[str, Any]]:
        """Fetch every remaining page."""
        return [page async for page in self]
