"""Disk-backed entity store.

Uses :mod:`diskcache` to persist entities on the filesystem, one
:class:`diskcache.Cache` directory per entity kind
(``<store dir>/episodes/``, ``<store dir>/characters/``). Records are
stored as JSON-compatible dicts under their integer id, dumped with the
API's wire names so a stored record decodes exactly like a fresh one.

Every replacement is a delete followed by an insert inside one
``transact()`` block, so an entity is never partially patched.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Any, Iterable, Optional

import diskcache
from pydantic import ValidationError

from rickdex.exceptions import StoreError
from rickdex.models import Collection
from rickdex.store.base import EntityStore, EntityT

logger = logging.getLogger(__name__)

_STORE_ERRORS = (sqlite3.Error, OSError, diskcache.Timeout)


class DiskEntityStore(EntityStore[EntityT]):
    """Persist entities of one kind in a :class:`diskcache.Cache`.

    Args:
        directory: Root store directory. A subdirectory named after
            *kind* is created inside it.
        kind: Which collection this store holds.
        model: Pydantic model used to decode stored records.

    Example::

        store = DiskEntityStore(tmp_path, Collection.EPISODES, Episode)
        store.upsert_all(page.records)
        episodes = store.fetch_all_sorted()
    """

    def __init__(self, directory: str | Path, kind: Collection, model: type[EntityT]) -> None:
        self._kind = kind
        self._model = model
        self._directory = Path(directory) / kind.value
        try:
            self._cache = diskcache.Cache(str(self._directory))
        except _STORE_ERRORS as exc:
            raise StoreError(f"Cannot open {kind.value} store at {self._directory}: {exc}") from exc

    @property
    def kind(self) -> Collection:
        return self._kind

    @property
    def directory(self) -> Path:
        return self._directory

    def upsert(self, entity: EntityT) -> None:
        self.upsert_all([entity])

    def upsert_all(self, entities: Iterable[EntityT]) -> None:
        items = [(self._id_of(entity), self._dump(entity)) for entity in entities]
        if not items:
            return
        try:
            with self._cache.transact(retry=True):
                for key, value in items:
                    self._cache.delete(key, retry=True)
                    self._cache.set(key, value, retry=True)
        except _STORE_ERRORS as exc:
            raise StoreError(f"Failed to write {len(items)} {self._kind.value}: {exc}") from exc
        logger.debug("Stored %d %s", len(items), self._kind.value)

    def fetch_by_id(self, entity_id: int) -> Optional[EntityT]:
        try:
            raw = self._cache.get(entity_id, retry=True)
        except _STORE_ERRORS as exc:
            raise StoreError(f"Failed to read {self._kind.value} {entity_id}: {exc}") from exc
        if raw is None:
            return None
        return self._load(raw)

    def fetch_all_sorted(self) -> list[EntityT]:
        try:
            keys = sorted(self._cache.iterkeys())
            raws = [self._cache.get(key, retry=True) for key in keys]
        except _STORE_ERRORS as exc:
            raise StoreError(f"Failed to read {self._kind.value}: {exc}") from exc
        return [self._load(raw) for raw in raws if raw is not None]

    def delete_all(self) -> None:
        try:
            removed = self._cache.clear(retry=True)
        except _STORE_ERRORS as exc:
            raise StoreError(f"Failed to delete {self._kind.value}: {exc}") from exc
        logger.debug("Deleted %d %s", removed, self._kind.value)

    def replace_all(self, entities: Iterable[EntityT]) -> None:
        items = [(self._id_of(entity), self._dump(entity)) for entity in entities]
        try:
            with self._cache.transact(retry=True):
                for key in list(self._cache.iterkeys()):
                    self._cache.delete(key, retry=True)
                for key, value in items:
                    self._cache.set(key, value, retry=True)
        except _STORE_ERRORS as exc:
            raise StoreError(f"Failed to replace {self._kind.value}: {exc}") from exc
        logger.debug("Replaced stored %s with %d records", self._kind.value, len(items))

    def close(self) -> None:
        self._cache.close()

    def __len__(self) -> int:
        return len(self._cache)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _id_of(entity: EntityT) -> int:
        return int(getattr(entity, "id"))

    @staticmethod
    def _dump(entity: EntityT) -> dict[str, Any]:
        return entity.model_dump(mode="json", by_alias=True)

    def _load(self, raw: dict[str, Any]) -> EntityT:
        try:
            return self._model.model_validate(raw)
        except ValidationError as exc:
            raise StoreError(
                f"Stored {self._kind.value} record {raw.get('id')!r} is corrupt: {exc}"
            ) from exc
