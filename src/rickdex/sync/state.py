"""Published state of the sync orchestrators.

Every snapshot is an immutable value. Orchestrators replace the current
snapshot as a whole, on the event loop, and notify subscribers; readers
never observe a half-applied update.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Generic, Mapping, Optional, TypeVar

from rickdex.exceptions import RickdexError

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")
StateT = TypeVar("StateT")


class StatusKind(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass(frozen=True)
class LoadStatus:
    """Load status of a collection; ``error`` is set only for ``FAILED``.

    Transitions: idle -> loading -> (loaded | failed), and back to loading on
    any later load. Serving cached data after a failed refresh is ``LOADED``
    with a notice on the snapshot, never ``FAILED``.
    """

    kind: StatusKind = StatusKind.IDLE
    error: Optional[RickdexError] = None

    @classmethod
    def idle(cls) -> LoadStatus:
        return cls(StatusKind.IDLE)

    @classmethod
    def loading(cls) -> LoadStatus:
        return cls(StatusKind.LOADING)

    @classmethod
    def loaded(cls) -> LoadStatus:
        return cls(StatusKind.LOADED)

    @classmethod
    def failed(cls, error: RickdexError) -> LoadStatus:
        return cls(StatusKind.FAILED, error)

    @property
    def is_loading(self) -> bool:
        return self.kind is StatusKind.LOADING

    def __str__(self) -> str:
        if self.error is not None:
            return f"{self.kind.value}: {self.error}"
        return self.kind.value


@dataclass(frozen=True)
class CollectionState(Generic[RecordT]):
    """Snapshot of a paginated collection.

    Attributes:
        status: Overall load status.
        entities: Records sorted by ascending id, no duplicates.
        has_more: Whether another page can be requested.
        current_page: Last page fetched (1 before any fetch).
        remote_total_count: Total the server last reported.
        loading_more: True while a next-page fetch is in flight.
        notice: Non-fatal message, e.g. the error behind a cache fallback.
    """

    status: LoadStatus = field(default_factory=LoadStatus.idle)
    entities: tuple[RecordT, ...] = ()
    has_more: bool = False
    current_page: int = 1
    remote_total_count: int = 0
    loading_more: bool = False
    notice: Optional[str] = None


@dataclass(frozen=True)
class EntityMapState(Generic[RecordT]):
    """Snapshot of records loaded by id.

    Attributes:
        status: Status of the most recent load request.
        entities: Read-only mapping from id to record.
        loading_ids: Ids with a fetch currently in flight.
        notice: Non-fatal message from the most recent load.
    """

    status: LoadStatus = field(default_factory=LoadStatus.idle)
    entities: Mapping[int, RecordT] = field(default_factory=lambda: MappingProxyType({}))
    loading_ids: frozenset[int] = frozenset()
    notice: Optional[str] = None


Subscriber = Callable[[StateT], None]


class Observable(Generic[StateT]):
    """Holds the current snapshot and fans out replacements to subscribers."""

    def __init__(self, initial: StateT) -> None:
        self._value = initial
        self._subscribers: list[Subscriber[StateT]] = []

    @property
    def value(self) -> StateT:
        return self._value

    def subscribe(self, callback: Subscriber[StateT]) -> Callable[[], None]:
        """Register *callback* for every future snapshot; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, value: StateT) -> None:
        self._value = value
        for callback in list(self._subscribers):
            try:
                callback(value)
            except Exception:
                logger.exception("State subscriber %r failed", callback)
