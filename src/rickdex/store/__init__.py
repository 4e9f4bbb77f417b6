"""Local persistence for rickdex.

This package provides the two durable stores the sync engine writes to:

* :class:`DiskEntityStore` -- entities of one kind in a :mod:`diskcache`
  directory, behind the abstract :class:`EntityStore` interface.
* :class:`MetadataStore` -- sync timestamps and pagination progress in a
  small JSON file beside the entity store.

:func:`open_stores` builds both for a store directory.
"""

from __future__ import annotations

from pathlib import Path

from rickdex.models import Character, Collection, Episode
from rickdex.store.base import EntityStore
from rickdex.store.disk import DiskEntityStore
from rickdex.store.metadata import METADATA_FILENAME, MetadataStore


def open_stores(
    directory: str | Path,
) -> tuple[DiskEntityStore[Episode], DiskEntityStore[Character], MetadataStore]:
    """Open the episode store, character store and metadata store under *directory*."""
    root = Path(directory)
    return (
        DiskEntityStore(root, Collection.EPISODES, Episode),
        DiskEntityStore(root, Collection.CHARACTERS, Character),
        MetadataStore(root / METADATA_FILENAME),
    )


__all__ = ["DiskEntityStore", "EntityStore", "MetadataStore", "open_stores"]
