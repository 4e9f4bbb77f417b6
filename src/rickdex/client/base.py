"""Abstract remote fetcher consumed by the sync engine.

The sync orchestrators never talk HTTP directly. They depend on
:class:`RemoteFetcher`, which hands back decoded pages and characters or
raises one of the typed errors from :mod:`rickdex.exceptions`:

* :class:`~rickdex.exceptions.NetworkError` and its subclasses
  (``InvalidRequestError``, ``NotFoundError``, ``ServerError``) when the
  API is unreachable or answers with a non-2xx status;
* :class:`~rickdex.exceptions.DecodeError` when the API answers with a
  payload that does not match the models.

:class:`~rickdex.client.fetcher.ApiFetcher` is the production
implementation; tests substitute in-memory fakes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Generic, Optional, Sequence, TypeVar

from rickdex.exceptions import NotFoundError
from rickdex.models import Character, Collection

RecordT = TypeVar("RecordT")


@dataclass(frozen=True)
class FetchedPage(Generic[RecordT]):
    """One decoded page of a paginated collection.

    Attributes:
        index: 1-based page index that was requested.
        records: Decoded records in server order.
        total_count: Total number of records the server reports.
        has_next: Whether the server reports a following page.
        next_cursor: The server's ``next`` URL, if it sent one.
    """

    index: int
    records: list[RecordT] = field(default_factory=list)
    total_count: int = 0
    has_next: bool = False
    next_cursor: Optional[str] = None


class RemoteFetcher(ABC):
    """Read-only access to the remote collections."""

    supports_batch: bool = False
    """Whether :meth:`fetch_entities` resolves many ids in one request."""

    @abstractmethod
    async def fetch_page(self, collection: Collection, page_index: int) -> FetchedPage:
        """Fetch page *page_index* (1-based) of *collection*."""

    @abstractmethod
    async def fetch_entity(self, entity_id: int) -> Character:
        """Fetch a single character by id."""

    async def fetch_entities(self, entity_ids: Sequence[int]) -> list[Character]:
        """Fetch several characters.

        The default implementation issues one request per id; fetchers
        with :attr:`supports_batch` override it with a single request.
        Ids unknown to the server are omitted from the result.
        """
        characters = []
        for entity_id in entity_ids:
            try:
                characters.append(await self.fetch_entity(entity_id))
            except NotFoundError:
                continue
        return characters
