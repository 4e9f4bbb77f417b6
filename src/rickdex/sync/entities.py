"""Id-keyed sync of characters.

Characters are loaded on demand, usually as the cast of an episode. Each
character carries its own fetch timestamp in the metadata store, so one
fresh character is served from the cache while a stale neighbour is
refetched.

Concurrent requests for overlapping ids share fetches through a
:class:`~rickdex.sync.single_flight.SingleFlight` keyed by id: ids that
are already in flight are not requested again.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Iterable, Optional

from rickdex.client.base import RemoteFetcher
from rickdex.exceptions import DecodeError, NetworkError, NotFoundError, RickdexError, StoreError
from rickdex.models import Character, Collection
from rickdex.store.base import EntityStore
from rickdex.store.metadata import MetadataStore
from rickdex.sync.base import Clock, SyncEngine
from rickdex.sync.single_flight import SingleFlight
from rickdex.sync.staleness import MAX_AGE, is_stale, utcnow
from rickdex.sync.state import EntityMapState, LoadStatus

logger = logging.getLogger(__name__)

_FETCH_ERRORS = (NetworkError, DecodeError)


class EntitySync(SyncEngine[EntityMapState[Character]]):
    """Loads characters by id, cache first, with per-id freshness.

    Args:
        store: Entity store for characters.
        metadata: Shared metadata store holding per-id fetch times.
        fetcher: Remote source of characters.
        max_age: Staleness threshold per character.
        clock: Returns the current aware UTC time.
    """

    def __init__(
        self,
        store: EntityStore[Character],
        metadata: MetadataStore,
        fetcher: RemoteFetcher,
        *,
        collection: Collection = Collection.CHARACTERS,
        max_age: timedelta = MAX_AGE,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(collection, metadata, EntityMapState(), max_age=max_age, clock=clock)
        self._store = store
        self._fetcher = fetcher
        self._guard: SingleFlight[int, Character] = SingleFlight()
        self._entities: dict[int, Character] = {}

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def entity(self, entity_id: int) -> Optional[Character]:
        """The character held for *entity_id*, fresh or not."""
        return self._entities.get(entity_id)

    def is_loading(self, entity_id: int) -> bool:
        return self._guard.in_flight(entity_id)

    def fetched_at(self, entity_id: int) -> Optional[datetime]:
        return self._metadata.entity_fetched_at(self.collection, entity_id)

    def is_fresh(self, entity_id: int) -> bool:
        """Whether *entity_id* is held and was fetched within ``max_age``."""
        if entity_id not in self._entities:
            return False
        return not is_stale(self.fetched_at(entity_id), self.max_age, self._now())

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    async def restore(self) -> EntityMapState[Character]:
        """Seed the published map with every stored character."""
        try:
            stored = await self._io(self._store.fetch_all_sorted)
        except StoreError as exc:
            return self._publish(status=LoadStatus.failed(exc))
        self._entities = {character.id: character for character in stored}
        return self._publish(entities=self._frozen_entities())

    async def load_entity(self, entity_id: int) -> Optional[Character]:
        """Load one character, joining a fetch of the same id already in flight.

        Returns:
            The character now held for *entity_id*, or ``None`` if it could
            not be fetched and nothing was cached.
        """
        try:
            await self._seed_from_store([entity_id])
        except StoreError as exc:
            self._publish(status=LoadStatus.failed(exc))
            return None
        if self.is_fresh(entity_id):
            self._settle([entity_id], None)
            return self.entity(entity_id)

        self._publish(
            status=LoadStatus.loading(),
            loading_ids=self._guard.keys() | {entity_id},
            notice=None,
        )
        error: Optional[RickdexError] = None
        try:
            fetched = await self._guard.run(entity_id, lambda: self._fetch_one(entity_id))
            if fetched is None:
                error = NotFoundError(f"Character {entity_id} not found")
        except _FETCH_ERRORS as exc:
            error = exc
        except StoreError as exc:
            self._publish(status=LoadStatus.failed(exc), loading_ids=self._guard.keys())
            return None

        self._settle([entity_id], error)
        return self.entity(entity_id)

    async def load_entities(self, entity_ids: Iterable[int]) -> EntityMapState[Character]:
        """Load many characters; fresh ids are skipped.

        Uses the fetcher's batch request when it has one, otherwise one
        concurrent request per id. Ids already in flight are not requested
        again; their running fetch is awaited instead. Ids that fail to
        fetch keep any stored copy. The status is ``FAILED`` only if none of
        the requested ids ends up held.
        """
        requested = list(dict.fromkeys(entity_ids))
        if not requested:
            return self.state
        try:
            await self._seed_from_store(requested)
        except StoreError as exc:
            return self._publish(status=LoadStatus.failed(exc))

        stale = [i for i in requested if not self.is_fresh(i)]
        if not stale:
            return self._settle(requested, None)
        joining = [i for i in stale if self._guard.in_flight(i)]
        needed = [i for i in stale if i not in joining]

        self._publish(
            status=LoadStatus.loading(),
            loading_ids=self._guard.keys() | set(needed),
            notice=None,
        )
        logger.debug(
            "Fetching %d of %d requested characters, joining %d in flight",
            len(needed),
            len(requested),
            len(joining),
        )

        outcomes = await asyncio.gather(
            self._fetch_needed(needed),
            self._fetch_each(joining),
            return_exceptions=True,
        )
        error: Optional[RickdexError] = None
        for outcome in outcomes:
            if isinstance(outcome, StoreError):
                return self._publish(status=LoadStatus.failed(outcome), loading_ids=self._guard.keys())
            if isinstance(outcome, _FETCH_ERRORS):
                error = error or outcome
            elif isinstance(outcome, BaseException):
                raise outcome
            elif outcome is not None:
                error = error or outcome

        return self._settle(requested, error)

    async def clear(self) -> EntityMapState[Character]:
        """Delete every stored character and their fetch times."""
        try:
            async with self._write_lock:
                await self._io(self._store.delete_all)
                await self._io(self._metadata.reset, self.collection)
                self._entities = {}
        except StoreError as exc:
            return self._publish(status=LoadStatus.failed(exc))
        return self._reset_state(EntityMapState())

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _frozen_entities(self) -> MappingProxyType:
        return MappingProxyType(dict(self._entities))

    def _settle(self, requested: list[int], error: Optional[RickdexError]) -> EntityMapState[Character]:
        held = [i for i in requested if i in self._entities]
        loading_ids = self._guard.keys()
        if error is not None and not held:
            logger.info("Loading characters %s failed: %s", requested, error)
            return self._publish(
                status=LoadStatus.failed(error),
                entities=self._frozen_entities(),
                loading_ids=loading_ids,
            )
        return self._publish(
            status=LoadStatus.loaded(),
            entities=self._frozen_entities(),
            loading_ids=loading_ids,
            notice=str(error) if error is not None else None,
        )

    async def _seed_from_store(self, entity_ids: list[int]) -> None:
        for entity_id in entity_ids:
            if entity_id in self._entities:
                continue
            stored = await self._io(self._store.fetch_by_id, entity_id)
            if stored is not None:
                self._entities[entity_id] = stored

    async def _fetch_one(self, entity_id: int) -> Character:
        character = await self._fetcher.fetch_entity(entity_id)
        await self._persist([character])
        return character

    async def _fetch_many(self, entity_ids: list[int]) -> dict[int, Character]:
        characters = await self._fetcher.fetch_entities(entity_ids)
        await self._persist(characters)
        return {character.id: character for character in characters}

    async def _fetch_needed(self, entity_ids: list[int]) -> Optional[RickdexError]:
        if not entity_ids or not self._fetcher.supports_batch:
            return await self._fetch_each(entity_ids)
        results = await self._guard.run_batch(entity_ids, self._fetch_many)
        missing = [i for i, found in results.items() if found is None]
        if missing:
            return NotFoundError(f"Characters not found: {missing}")
        return None

    async def _fetch_each(self, entity_ids: list[int]) -> Optional[RickdexError]:
        outcomes = await asyncio.gather(
            *(self._guard.run(i, lambda i=i: self._fetch_one(i)) for i in entity_ids),
            return_exceptions=True,
        )
        first_error: Optional[RickdexError] = None
        for outcome in outcomes:
            if isinstance(outcome, StoreError):
                raise outcome
            if isinstance(outcome, _FETCH_ERRORS):
                first_error = first_error or outcome
            elif isinstance(outcome, BaseException):
                raise outcome
            elif outcome is None:
                # A joined batch resolves ids the server left out to None.
                first_error = first_error or NotFoundError("Characters not found in batch response")
        return first_error

    async def _persist(self, characters: list[Character]) -> None:
        if not characters:
            return
        fetched_at = self._now()
        async with self._write_lock:
            await self._io(self._store.upsert_all, characters)
            await self._io(
                self._metadata.touch_entities,
                self.collection,
                [character.id for character in characters],
                fetched_at,
            )
            for character in characters:
                self._entities[character.id] = character
