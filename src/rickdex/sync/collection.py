"""Cache-first, paginated sync of one collection (episodes).

:class:`CollectionSync` keeps the local store and the published
:class:`~rickdex.sync.state.CollectionState` consistent with the remote
API:

* A fresh, non-empty cache is served as is.
* A stale or empty cache triggers a fetch of page 1. On success the stored
  rows are replaced by that page; on failure the cached rows are served
  with a notice, or the load fails if there is nothing cached.
* Later pages are appended on demand, one at a time, in order.

A generation counter is bumped whenever the collection is reset or
replaced. A page fetch started under an older generation is discarded
when it completes, so a stale response can never repopulate a cleared
collection.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Generic, Optional, Sequence

from rickdex.client.base import FetchedPage, RemoteFetcher
from rickdex.exceptions import DecodeError, NetworkError, StoreError
from rickdex.models import Collection, CollectionMetadata
from rickdex.store.base import EntityStore
from rickdex.store.metadata import MetadataStore
from rickdex.sync.base import Clock, SyncEngine
from rickdex.sync.pagination import PAGE_SIZE, PaginationTracker
from rickdex.sync.single_flight import SingleFlight
from rickdex.sync.staleness import MAX_AGE, days_since, is_stale, should_show_refresh_hint, utcnow
from rickdex.sync.state import CollectionState, LoadStatus, RecordT

logger = logging.getLogger(__name__)


class CollectionSync(SyncEngine[CollectionState[RecordT]], Generic[RecordT]):
    """Orchestrates loading, paging, refreshing and clearing a collection.

    Args:
        collection: Which collection this instance syncs.
        store: Entity store for the collection's records.
        metadata: Shared metadata store.
        fetcher: Remote source of pages.
        page_size: Records per page, for the count-based page fallback.
        max_age: Staleness threshold.
        clock: Returns the current aware UTC time.

    Example::

        sync = CollectionSync(Collection.EPISODES, episode_store, metadata, fetcher)
        state = await sync.load_collection()
        while state.has_more:
            state = await sync.load_next_page()
    """

    def __init__(
        self,
        collection: Collection,
        store: EntityStore[RecordT],
        metadata: MetadataStore,
        fetcher: RemoteFetcher,
        *,
        page_size: int = PAGE_SIZE,
        max_age: timedelta = MAX_AGE,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(collection, metadata, CollectionState(), max_age=max_age, clock=clock)
        self._store = store
        self._fetcher = fetcher
        self._tracker = PaginationTracker(page_size)
        self._guard: SingleFlight[int, FetchedPage] = SingleFlight()
        self._records: dict[int, RecordT] = {}
        self._generation = 0

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    @property
    def last_fetched_at(self) -> Optional[datetime]:
        return self._metadata.get(self.collection).last_fetched_at

    def days_since_last_fetch(self) -> Optional[int]:
        return days_since(self.last_fetched_at, self._now())

    def should_show_refresh_hint(self) -> bool:
        return should_show_refresh_hint(self.last_fetched_at, self._now(), self.max_age)

    def is_page_loading(self, page_index: int) -> bool:
        return self._guard.in_flight(page_index)

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    async def restore(self) -> CollectionState[RecordT]:
        """Seed the published state from the store without touching the network."""
        try:
            cached = await self._io(self._store.fetch_all_sorted)
        except StoreError as exc:
            return self._publish(status=LoadStatus.failed(exc))
        metadata = self._metadata.get(self.collection)
        self._seed(cached, metadata)
        return self._publish(**self._pagination_fields())

    async def load_collection(self, force_refresh: bool = False) -> CollectionState[RecordT]:
        """Load the collection, cache first.

        Args:
            force_refresh: Drop the store and metadata first, then fetch
                page 1 regardless of freshness.

        Returns:
            The snapshot published when the load settled.
        """
        self._publish(status=LoadStatus.loading(), notice=None)

        if force_refresh:
            try:
                await self._wipe()
            except StoreError as exc:
                return self._publish(status=LoadStatus.failed(exc))
            self._publish(**self._pagination_fields())

        try:
            cached = await self._io(self._store.fetch_all_sorted)
        except StoreError as exc:
            return self._publish(status=LoadStatus.failed(exc))
        metadata = self._metadata.get(self.collection)

        if cached and not is_stale(metadata.last_fetched_at, self.max_age, self._now()):
            logger.debug("Serving %d cached %s", len(cached), self.collection.value)
            self._seed(cached, metadata)
            return self._publish(status=LoadStatus.loaded(), **self._pagination_fields())

        generation = self._generation
        try:
            page = await self._guard.run(1, lambda: self._fetcher.fetch_page(self.collection, 1))
        except (NetworkError, DecodeError) as exc:
            if not cached:
                logger.info("Loading %s failed with nothing cached: %s", self.collection.value, exc)
                return self._publish(status=LoadStatus.failed(exc))
            logger.info("Refreshing %s failed, serving cache: %s", self.collection.value, exc)
            self._seed(cached, metadata)
            return self._publish(
                status=LoadStatus.loaded(), notice=str(exc), **self._pagination_fields()
            )

        try:
            await self._replace_with_first_page(page, generation)
        except StoreError as exc:
            return self._publish(status=LoadStatus.failed(exc))
        return self._publish(status=LoadStatus.loaded(), **self._pagination_fields())

    async def load_next_page(self) -> CollectionState[RecordT]:
        """Fetch and append the page after the last one loaded.

        A no-op when there are no more pages or that page is already being
        fetched. A fetch failure keeps the status and records as they are
        and sets a notice.
        """
        if not self._tracker.has_more:
            return self.state
        try:
            index = self._tracker.next_page_index(len(self._records))
        except DecodeError as exc:
            return self._publish(notice=str(exc))
        if self._guard.in_flight(index):
            return self.state

        generation = self._generation
        self._publish(loading_more=True, notice=None)
        try:
            page = await self._guard.run(
                index, lambda: self._fetcher.fetch_page(self.collection, index)
            )
        except (NetworkError, DecodeError) as exc:
            logger.info("Loading %s page %d failed: %s", self.collection.value, index, exc)
            return self._publish(loading_more=False, notice=str(exc))

        try:
            await self._append_page(page, generation)
        except StoreError as exc:
            return self._publish(status=LoadStatus.failed(exc), loading_more=False)
        return self._publish(loading_more=False, **self._pagination_fields())

    async def force_refresh(self) -> CollectionState[RecordT]:
        """Discard everything stored for the collection and reload page 1."""
        return await self.load_collection(force_refresh=True)

    async def clear(self) -> CollectionState[RecordT]:
        """Delete stored records and metadata; the next load behaves as a first run."""
        try:
            await self._wipe()
        except StoreError as exc:
            return self._publish(status=LoadStatus.failed(exc))
        return self._reset_state(CollectionState())

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _seed(self, records: Sequence[RecordT], metadata: CollectionMetadata) -> None:
        self._records = {self._id_of(record): record for record in records}
        self._tracker.restore(metadata)

    def _pagination_fields(self) -> dict[str, Any]:
        return {
            "entities": tuple(self._records[key] for key in sorted(self._records)),
            "has_more": self._tracker.has_more,
            "current_page": self._tracker.current_page,
            "remote_total_count": self._tracker.remote_total_count,
        }

    async def _wipe(self) -> None:
        async with self._write_lock:
            self._generation += 1
            await self._io(self._store.delete_all)
            await self._io(self._metadata.reset, self.collection)
            self._records = {}
            self._tracker.reset()

    async def _replace_with_first_page(self, page: FetchedPage, generation: int) -> None:
        async with self._write_lock:
            if generation != self._generation:
                logger.debug("Discarding page 1 of %s fetched before a reset", self.collection.value)
                return
            self._generation += 1
            tracker = self._tracker.copy()
            tracker.reset()
            tracker.advance(page)
            await self._io(self._store.replace_all, page.records)
            await self._io(
                self._metadata.put, self.collection, tracker.to_metadata(self._now())
            )
            self._tracker = tracker
            self._records = {self._id_of(record): record for record in page.records}

    async def _append_page(self, page: FetchedPage, generation: int) -> None:
        async with self._write_lock:
            if generation != self._generation:
                logger.debug(
                    "Discarding page %d of %s fetched before a reset",
                    page.index,
                    self.collection.value,
                )
                return
            if page.index != self._tracker.current_page + 1:
                logger.debug("Page %d of %s already applied", page.index, self.collection.value)
                return
            tracker = self._tracker.copy()
            tracker.advance(page)
            last_fetched_at = self.last_fetched_at or self._now()
            await self._io(self._store.upsert_all, page.records)
            await self._io(
                self._metadata.put, self.collection, tracker.to_metadata(last_fetched_at)
            )
            self._tracker = tracker
            self._records.update((self._id_of(record), record) for record in page.records)

    @staticmethod
    def _id_of(record: RecordT) -> int:
        return int(getattr(record, "id"))
