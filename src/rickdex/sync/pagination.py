"""Pagination progress for one collection.

A :class:`PaginationTracker` records which page of a collection was
fetched last, whether more pages exist, and the server's reported total.
It decides the index of the next page to request:

* When the last page carried a ``next`` cursor, the ``page`` query
  parameter of that URL is authoritative.
* Otherwise the index is derived from how many records are held locally:
  ``loaded // page_size + 1``.

Either way the result must be exactly ``current_page + 1``. A cursor that
points anywhere else is a server contract violation and raises
:class:`~rickdex.exceptions.DecodeError`. A count that disagrees (a short
page in the middle of the collection) is logged and overridden by the
tracker's own bookkeeping, so a page is never skipped or fetched twice.
"""

from __future__ import annotations

import copy
import logging
from datetime import datetime
from typing import Optional

import httpx

from rickdex.client.base import FetchedPage
from rickdex.exceptions import DecodeError
from rickdex.models import CollectionMetadata

logger = logging.getLogger(__name__)

PAGE_SIZE = 20
"""Records per page served by the API."""


def page_from_cursor(cursor: Optional[str]) -> Optional[int]:
    """Extract the ``page`` query parameter from a ``next`` URL.

    Returns ``None`` if there is no cursor or it carries no usable page.
    """
    if not cursor:
        return None
    try:
        value = httpx.URL(cursor).params.get("page")
    except (httpx.InvalidURL, TypeError, ValueError):
        return None
    if value is None or not (value.isascii() and value.isdigit()):
        return None
    return int(value)


def page_from_count(loaded_count: int, page_size: int = PAGE_SIZE) -> int:
    """Next page index implied by *loaded_count* records held locally."""
    return loaded_count // page_size + 1


class PaginationTracker:
    """Mutable pagination state of one collection.

    Before any fetch ``current_page`` is 1 and ``has_more`` is False; page 1
    is always requested through a full collection load, never through
    :meth:`next_page_index`.

    Args:
        page_size: Records per page, used for the count-based fallback.
    """

    def __init__(self, page_size: int = PAGE_SIZE) -> None:
        self.page_size = page_size
        self.reset()

    def reset(self) -> None:
        """Return to the never-fetched state."""
        self.current_page = 1
        self.has_more = False
        self.remote_total_count = 0
        self.next_cursor: Optional[str] = None

    def copy(self) -> PaginationTracker:
        return copy.copy(self)

    def next_page_index(self, loaded_count: int) -> int:
        """Return the index of the page that follows the last one fetched.

        Args:
            loaded_count: Number of records currently held for the collection.

        Raises:
            DecodeError: If the server's cursor would skip or repeat a page.
        """
        expected = self.current_page + 1
        from_cursor = page_from_cursor(self.next_cursor)
        if from_cursor is not None:
            if from_cursor != expected:
                raise DecodeError(
                    f"Server cursor points to page {from_cursor}, "
                    f"expected page {expected}"
                )
            return from_cursor

        from_count = page_from_count(loaded_count, self.page_size)
        if from_count != expected:
            logger.warning(
                "Holding %d records implies page %d, continuing with page %d",
                loaded_count,
                from_count,
                expected,
            )
        return expected

    def advance(self, page: FetchedPage) -> None:
        """Record a successfully fetched and persisted *page*.

        Raises:
            ValueError: If *page* is neither page 1 nor the page after
                ``current_page``.
        """
        if page.index != 1 and page.index != self.current_page + 1:
            raise ValueError(
                f"Cannot advance from page {self.current_page} to page {page.index}"
            )
        self.current_page = page.index
        self.has_more = page.has_next
        self.remote_total_count = page.total_count
        self.next_cursor = page.next_cursor

    def restore(self, metadata: CollectionMetadata) -> None:
        """Load progress previously saved with :meth:`to_metadata`."""
        self.current_page = max(metadata.current_page, 1)
        self.has_more = metadata.has_more
        self.remote_total_count = metadata.remote_total_count
        self.next_cursor = metadata.next_cursor

    def to_metadata(self, last_fetched_at: Optional[datetime]) -> CollectionMetadata:
        return CollectionMetadata(
            last_fetched_at=last_fetched_at,
            remote_total_count=self.remote_total_count,
            current_page=self.current_page,
            has_more=self.has_more,
            next_cursor=self.next_cursor,
        )

    def __repr__(self) -> str:
        return (
            f"PaginationTracker(current_page={self.current_page}, "
            f"has_more={self.has_more}, remote_total_count={self.remote_total_count})"
        )
