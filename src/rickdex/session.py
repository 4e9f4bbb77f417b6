"""Composition root: open stores, client and orchestrators for one CLI run.

The CLI is the only caller. Tests pass an :class:`httpx.MockTransport`
through ``transport`` to exercise the whole stack without the network.

Example::

    async with open_session(resolve_config()) as session:
        state = await session.episodes.load_collection()
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Optional

import httpx

from rickdex.client import ApiFetcher, AsyncClient
from rickdex.config import get_store_dir
from rickdex.models import Character, Collection, Episode, GlobalConfig
from rickdex.store import DiskEntityStore, MetadataStore, open_stores
from rickdex.sync import CollectionSync, EntitySync


@dataclass
class Session:
    """Everything a command needs, already wired together."""

    episodes: CollectionSync[Episode]
    characters: EntitySync
    metadata: MetadataStore
    episode_store: DiskEntityStore[Episode]
    character_store: DiskEntityStore[Character]
    store_dir: Path


@asynccontextmanager
async def open_session(
    config: GlobalConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncIterator[Session]:
    """Yield a :class:`Session`; stores and the HTTP client are closed on exit."""
    store_dir = get_store_dir(config)
    episode_store, character_store, metadata = open_stores(store_dir)
    try:
        async with AsyncClient(config, transport=transport) as client:
            fetcher = ApiFetcher(client)
            yield Session(
                episodes=CollectionSync(Collection.EPISODES, episode_store, metadata, fetcher),
                characters=EntitySync(character_store, metadata, fetcher),
                metadata=metadata,
                episode_store=episode_store,
                character_store=character_store,
                store_dir=store_dir,
            )
    finally:
        episode_store.close()
        character_store.close()

