from __future__ import annotations

from typing import Any, Callable, Generic, Sequence, TypeVar

T = TypeVar("T")

PageFetch = Callable[[Any], tuple[Sequence[T], Any]]


class PaginatedFetcher(Generic[T]):
    """Drives a cursor/page-number listing API to exhaustion.

    Each concrete API adapts its own paging convention into
    ``fetch_page(token) -> (items, next_token)``. A falsy next token
    (None, "", 0) ends the listing. Any error propagates immediately and
    the partial results are discarded.
    """

    def fetch_all(self, fetch_page: PageFetch, first_token: Any = None) -> list[T]:
        items: list[T] = []
        token = first_token
        while True:
            page_items, next_token = fetch_page(token)
            items.extend(page_items)
            if not next_token:
                return items
            token = next_token
