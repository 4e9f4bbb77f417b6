"""Cache-first synchronisation engine.

* :mod:`~rickdex.sync.staleness` -- the seven-day freshness policy.
* :mod:`~rickdex.sync.single_flight` -- per-key deduplication of fetches.
* :mod:`~rickdex.sync.pagination` -- page bookkeeping for a collection.
* :mod:`~rickdex.sync.state` -- immutable published snapshots.
* :class:`CollectionSync` -- paginated collections (episodes).
* :class:`EntitySync` -- id-keyed records (characters).
"""

from rickdex.sync.collection import CollectionSync
from rickdex.sync.entities import EntitySync
from rickdex.sync.pagination import PAGE_SIZE, PaginationTracker
from rickdex.sync.single_flight import SingleFlight
from rickdex.sync.staleness import MAX_AGE, days_since, is_stale, should_show_refresh_hint
from rickdex.sync.state import CollectionState, EntityMapState, LoadStatus, StatusKind

__all__ = [
    "MAX_AGE",
    "PAGE_SIZE",
    "CollectionState",
    "CollectionSync",
    "EntityMapState",
    "EntitySync",
    "LoadStatus",
    "PaginationTracker",
    "SingleFlight",
    "StatusKind",
    "days_since",
    "is_stale",
    "should_show_refresh_hint",
]
