"""Persisted sync metadata, kept apart from the entity store.

Sync bookkeeping (last fetch time, pagination progress, per-character
fetch times) lives in a single small JSON document,
``<store dir>/sync-metadata.json``, so that it survives entity-cache
clears independently and can be inspected by hand. Writes go through
:func:`~rickdex.config.atomic_write`.

The :class:`MetadataStore` is the only handle through which sync
metadata is read or written. The orchestrators receive it explicitly;
there is no module-level state.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from rickdex.config import atomic_write
from rickdex.exceptions import StoreError
from rickdex.models import Collection, CollectionMetadata, SyncMetadataFile

logger = logging.getLogger(__name__)

METADATA_FILENAME = "sync-metadata.json"


class MetadataStore:
    """Read/write :class:`~rickdex.models.CollectionMetadata` per collection.

    The whole document is loaded once and kept in memory; every mutation
    rewrites the file atomically before returning. Access is serialised by
    a lock because the orchestrators call in from worker threads.

    A missing file means "never synced". An unreadable or invalid file is
    logged and treated the same way, which makes the next load a first-run
    fetch rather than a hard failure.

    Args:
        path: Location of the JSON document.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._document = self._read()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, collection: Collection) -> CollectionMetadata:
        """Return a copy of the metadata for *collection* (defaults if never synced)."""
        with self._lock:
            current = self._document.collections.get(collection.value)
            if current is None:
                return CollectionMetadata()
            return current.model_copy(deep=True)

    def put(self, collection: Collection, metadata: CollectionMetadata) -> None:
        """Replace the metadata for *collection* and persist."""
        with self._lock:
            document = self._document.model_copy(deep=True)
            document.collections[collection.value] = metadata.model_copy(deep=True)
            self._commit(document)

    def touch_entities(
        self, collection: Collection, entity_ids: list[int], fetched_at: datetime
    ) -> None:
        """Record *fetched_at* as the last fetch time of each id in *entity_ids*."""
        with self._lock:
            document = self._document.model_copy(deep=True)
            current = document.collections.setdefault(collection.value, CollectionMetadata())
            for entity_id in entity_ids:
                current.entity_fetched_at[entity_id] = fetched_at
            self._commit(document)

    def entity_fetched_at(self, collection: Collection, entity_id: int) -> Optional[datetime]:
        with self._lock:
            current = self._document.collections.get(collection.value)
            if current is None:
                return None
            return current.entity_fetched_at.get(entity_id)

    def reset(self, collection: Collection) -> None:
        """Forget everything about *collection* and persist."""
        with self._lock:
            document = self._document.model_copy(deep=True)
            document.collections.pop(collection.value, None)
            self._commit(document)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _read(self) -> SyncMetadataFile:
        if not self._path.is_file():
            return SyncMetadataFile()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return SyncMetadataFile.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            logger.warning("Ignoring unreadable sync metadata at %s: %s", self._path, exc)
            return SyncMetadataFile()

    def _commit(self, document: SyncMetadataFile) -> None:
        # Memory only moves once the file on disk does.
        data = document.model_dump(mode="json")
        try:
            atomic_write(self._path, json.dumps(data, indent=2) + "\n")
        except OSError as exc:
            raise StoreError(f"Failed to write sync metadata to {self._path}: {exc}") from exc
        self._document = document
