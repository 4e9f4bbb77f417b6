"""Plumbing shared by the sync orchestrators."""

from __future__ import annotations

import asyncio
import dataclasses
from datetime import datetime, timedelta
from typing import Any, Callable, Generic, TypeVar

from rickdex.models import Collection
from rickdex.store.metadata import MetadataStore
from rickdex.sync.state import Observable, StateT, Subscriber
from rickdex.sync.staleness import MAX_AGE, utcnow

T = TypeVar("T")

Clock = Callable[[], datetime]


class SyncEngine(Generic[StateT]):
    """Base class owning the published state, the clock and the write lock.

    Store calls are blocking, so they run in worker threads through
    :meth:`_io`; state is only ever published from the event loop. The
    write lock serialises every sequence of store writes plus the matching
    in-memory update, so persisted and published state move together.
    """

    def __init__(
        self,
        collection: Collection,
        metadata: MetadataStore,
        initial: StateT,
        *,
        max_age: timedelta = MAX_AGE,
        clock: Clock = utcnow,
    ) -> None:
        self.collection = collection
        self.max_age = max_age
        self._metadata = metadata
        self._clock = clock
        self._observable: Observable[StateT] = Observable(initial)
        self._write_lock = asyncio.Lock()

    @property
    def state(self) -> StateT:
        """The current published snapshot."""
        return self._observable.value

    def subscribe(self, callback: Subscriber[StateT]) -> Callable[[], None]:
        return self._observable.subscribe(callback)

    def _publish(self, **changes: Any) -> StateT:
        new_state = dataclasses.replace(self._observable.value, **changes)
        self._observable.publish(new_state)
        return new_state

    def _reset_state(self, state: StateT) -> StateT:
        self._observable.publish(state)
        return state

    def _now(self) -> datetime:
        return self._clock()

    @staticmethod
    async def _io(func: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(func, *args)
