"""Shared test fixtures for rickdex.

Provides record factories, an in-memory remote fetcher, isolated config
directories, output state management and a CLI runner. These fixtures are
discovered by pytest and available to all test modules without imports.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

import pytest

from rickdex.client.base import FetchedPage, RemoteFetcher
from rickdex.exceptions import NotFoundError, RickdexError
from rickdex.models import Character, Collection, Episode
from rickdex.output import OutputFormat, OutputManager, reset_output, set_output
from rickdex.store import DiskEntityStore, MetadataStore
from rickdex.store.metadata import METADATA_FILENAME

BASE_URL = "https://rickandmortyapi.com/api"
T0 = datetime(2025, 6, 20, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Record factories
# ---------------------------------------------------------------------------


def make_episode(episode_id: int, character_ids: Sequence[int] = (1, 2)) -> Episode:
    season, number = divmod(episode_id - 1, 10)
    return Episode.model_validate(
        {
            "id": episode_id,
            "name": f"Episode {episode_id}",
            "air_date": "December 2, 2013",
            "episode": f"S{season + 1:02d}E{number + 1:02d}",
            "characters": [f"{BASE_URL}/character/{i}" for i in character_ids],
            "url": f"{BASE_URL}/episode/{episode_id}",
            "created": "2017-11-10T12:56:33.798Z",
        }
    )


def make_character(character_id: int, name: Optional[str] = None, episodes: int = 2) -> Character:
    return Character.model_validate(
        {
            "id": character_id,
            "name": name or f"Character {character_id}",
            "status": "Alive",
            "species": "Human",
            "type": "",
            "gender": "Male",
            "origin": {"name": "Earth (C-137)", "url": f"{BASE_URL}/location/1"},
            "location": {"name": "Citadel of Ricks", "url": f"{BASE_URL}/location/3"},
            "image": f"{BASE_URL}/character/avatar/{character_id}.jpeg",
            "episode": [f"{BASE_URL}/episode/{i}" for i in range(1, episodes + 1)],
            "url": f"{BASE_URL}/character/{character_id}",
            "created": "2017-11-04T18:48:46.250Z",
        }
    )


@pytest.fixture
def episode_factory() -> Callable[..., Episode]:
    return make_episode


@pytest.fixture
def character_factory() -> Callable[..., Character]:
    return make_character


# ---------------------------------------------------------------------------
# In-memory remote fetcher
# ---------------------------------------------------------------------------


class FakeFetcher(RemoteFetcher):
    """Serves episodes and characters from memory and records every call.

    Set ``error`` to make every call raise it. Set ``gate`` to an
    :class:`asyncio.Event` to hold calls until the test releases them.
    """

    def __init__(
        self,
        episodes: Iterable[Episode] = (),
        characters: Iterable[Character] = (),
        page_size: int = 20,
        supports_batch: bool = True,
    ) -> None:
        self.episodes = sorted(episodes, key=lambda e: e.id)
        self.characters = {c.id: c for c in characters}
        self.page_size = page_size
        self.supports_batch = supports_batch
        self.page_calls: list[int] = []
        self.entity_calls: list[int] = []
        self.batch_calls: list[list[int]] = []
        self.error: Optional[RickdexError] = None
        self.gate: Optional[asyncio.Event] = None

    async def _pause(self) -> None:
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        if self.error is not None:
            raise self.error

    async def fetch_page(self, collection: Collection, page_index: int) -> FetchedPage:
        self.page_calls.append(page_index)
        await self._pause()
        start = (page_index - 1) * self.page_size
        records = self.episodes[start:start + self.page_size]
        if page_index > 1 and not records:
            raise NotFoundError(f"HTTP 404: page {page_index} does not exist")
        has_next = start + self.page_size < len(self.episodes)
        return FetchedPage(
            index=page_index,
            records=records,
            total_count=len(self.episodes),
            has_next=has_next,
            next_cursor=f"{BASE_URL}/episode?page={page_index + 1}" if has_next else None,
        )

    async def fetch_entity(self, entity_id: int) -> Character:
        self.entity_calls.append(entity_id)
        await self._pause()
        if entity_id not in self.characters:
            raise NotFoundError(f"HTTP 404: Character {entity_id} not found")
        return self.characters[entity_id]

    async def fetch_entities(self, entity_ids: Sequence[int]) -> list[Character]:
        self.batch_calls.append(list(entity_ids))
        await self._pause()
        return [self.characters[i] for i in entity_ids if i in self.characters]


@pytest.fixture
def fetcher_factory() -> Callable[..., FakeFetcher]:
    return FakeFetcher


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def episode_store(tmp_path: Path) -> DiskEntityStore[Episode]:
    store = DiskEntityStore(tmp_path, Collection.EPISODES, Episode)
    yield store
    store.close()


@pytest.fixture
def character_store(tmp_path: Path) -> DiskEntityStore[Character]:
    store = DiskEntityStore(tmp_path, Collection.CHARACTERS, Character)
    yield store
    store.close()


@pytest.fixture
def metadata_store(tmp_path: Path) -> MetadataStore:
    return MetadataStore(tmp_path / METADATA_FILENAME)


class Clock:
    """Manually advanced clock for staleness tests."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> Clock:
    return Clock()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch real user
    config, and clears all RICKDEX_* environment variables.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("rickdex.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in ["RICKDEX_BASE_URL", "RICKDEX_STORE_DIR"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager for the test."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
