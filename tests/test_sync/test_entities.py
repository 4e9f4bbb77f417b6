"""Tests for id-keyed character sync."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from rickdex.exceptions import NetworkError, NotFoundError, StoreError
from rickdex.models import Collection
from rickdex.sync import EntitySync, StatusKind

T0 = datetime(2025, 6, 20, 12, 0, tzinfo=timezone.utc)


def _sync(store, metadata, fetcher, clock) -> EntitySync:
    return EntitySync(store, metadata, fetcher, clock=clock)


@pytest.fixture
def cast(character_factory):
    return [
        character_factory(1, name="Rick Sanchez", episodes=51),
        character_factory(2, name="Morty Smith", episodes=51),
        character_factory(3, name="Summer Smith", episodes=42),
    ]


class TestLoadEntity:
    def test_fetches_and_persists(
        self, character_store, metadata_store, fetcher_factory, cast, clock
    ) -> None:
        fetcher = fetcher_factory(characters=cast)

        async def scenario():
            sync = _sync(character_store, metadata_store, fetcher, clock)
            return await sync.load_entity(1), sync

        character, sync = asyncio.run(scenario())
        assert character.name == "Rick Sanchez"
        assert fetcher.entity_calls == [1]
        assert character_store.fetch_by_id(1) == character
        assert sync.fetched_at(1) == T0
        assert sync.state.status.kind is StatusKind.LOADED
        assert sync.state.entities[1] == character

    def test_fresh_entity_is_not_refetched(
        self, character_store, metadata_store, fetcher_factory, cast, clock
    ) -> None:
        fetcher = fetcher_factory(characters=cast)

        async def scenario():
            await _sync(character_store, metadata_store, fetcher, clock).load_entity(2)
            clock.now = T0 + timedelta(days=3)
            return await _sync(character_store, metadata_store, fetcher, clock).load_entity(2)

        character = asyncio.run(scenario())
        assert character.id == 2
        assert fetcher.entity_calls == [2]

    def test_stale_entity_is_refetched(
        self, character_store, metadata_store, fetcher_factory, cast, clock
    ) -> None:
        fetcher = fetcher_factory(characters=cast)

        async def scenario():
            sync = _sync(character_store, metadata_store, fetcher, clock)
            await sync.load_entity(2)
            clock.now = T0 + timedelta(days=7)
            await sync.load_entity(2)
            return sync

        sync = asyncio.run(scenario())
        assert fetcher.entity_calls == [2, 2]
        assert sync.fetched_at(2) == T0 + timedelta(days=7)

    def test_failure_falls_back_to_stored_copy(
        self, character_store, metadata_store, fetcher_factory, cast, clock
    ) -> None:
        fetcher = fetcher_factory(characters=cast)

        async def scenario():
            await _sync(character_store, metadata_store, fetcher, clock).load_entity(3)
            clock.now = T0 + timedelta(days=30)
            fetcher.error = NetworkError("offline")
            sync = _sync(character_store, metadata_store, fetcher, clock)
            return await sync.load_entity(3), sync.state

        character, state = asyncio.run(scenario())
        assert character.name == "Summer Smith"
        assert state.status.kind is StatusKind.LOADED
        assert state.notice == "offline"

    def test_failure_with_nothing_stored(
        self, character_store, metadata_store, fetcher_factory, clock
    ) -> None:
        fetcher = fetcher_factory()
        fetcher.error = NetworkError("offline")

        async def scenario():
            sync = _sync(character_store, metadata_store, fetcher, clock)
            return await sync.load_entity(1), sync.state

        character, state = asyncio.run(scenario())
        assert character is None
        assert state.status.kind is StatusKind.FAILED
        assert state.loading_ids == frozenset()

    def test_unknown_id_is_not_found(
        self, character_store, metadata_store, fetcher_factory, cast, clock
    ) -> None:
        fetcher = fetcher_factory(characters=cast)

        async def scenario():
            sync = _sync(character_store, metadata_store, fetcher, clock)
            return await sync.load_entity(9999), sync.state

        character, state = asyncio.run(scenario())
        assert character is None
        assert isinstance(state.status.error, NotFoundError)

    def test_fresh_entity_is_published(
        self, character_store, metadata_store, fetcher_factory, cast, clock
    ) -> None:
        fetcher = fetcher_factory(characters=cast)

        async def scenario():
            await _sync(character_store, metadata_store, fetcher, clock).load_entity(1)
            sync = _sync(character_store, metadata_store, fetcher, clock)
            return await sync.load_entity(1), sync.state

        character, state = asyncio.run(scenario())
        assert fetcher.entity_calls == [1]
        assert state.status.kind is StatusKind.LOADED
        assert state.entities[1] == character

    def test_concurrent_requests_share_one_fetch(
        self, character_store, metadata_store, fetcher_factory, cast, clock
    ) -> None:
        fetcher = fetcher_factory(characters=cast)

        async def scenario():
            sync = _sync(character_store, metadata_store, fetcher, clock)
            fetcher.gate = asyncio.Event()
            loads = asyncio.gather(*(sync.load_entity(1) for _ in range(4)))
            while not fetcher.entity_calls:
                await asyncio.sleep(0.001)
            await asyncio.sleep(0.05)
            assert sync.is_loading(1)
            assert 1 in sync.state.loading_ids
            fetcher.gate.set()
            return await loads, sync

        results, sync = asyncio.run(scenario())
        assert fetcher.entity_calls == [1]
        assert all(r is results[0] for r in results)
        assert sync.state.loading_ids == frozenset()


class TestLoadEntities:
    def test_batch_fetches_only_missing_ids(
        self, character_store, metadata_store, fetcher_factory, cast, clock
    ) -> None:
        fetcher = fetcher_factory(characters=cast)

        async def scenario():
            sync = _sync(character_store, metadata_store, fetcher, clock)
            await sync.load_entity(1)
            return await sync.load_entities([1, 2, 3, 2])

        state = asyncio.run(scenario())
        assert fetcher.batch_calls == [[2, 3]]
        assert sorted(state.entities) == [1, 2, 3]
        assert state.status.kind is StatusKind.LOADED
        assert state.notice is None

    def test_per_id_when_batch_unsupported(
        self, character_store, metadata_store, fetcher_factory, cast, clock
    ) -> None:
        fetcher = fetcher_factory(characters=cast, supports_batch=False)

        async def scenario():
            return await _sync(character_store, metadata_store, fetcher, clock).load_entities([3, 1])

        state = asyncio.run(scenario())
        assert fetcher.batch_calls == []
        assert sorted(fetcher.entity_calls) == [1, 3]
        assert sorted(state.entities) == [1, 3]

    def test_all_fresh_makes_no_request(
        self, character_store, metadata_store, fetcher_factory, cast, clock
    ) -> None:
        fetcher = fetcher_factory(characters=cast)

        async def scenario():
            await _sync(character_store, metadata_store, fetcher, clock).load_entities([1, 2])
            return await _sync(character_store, metadata_store, fetcher, clock).load_entities([2, 1])

        state = asyncio.run(scenario())
        assert fetcher.batch_calls == [[1, 2]]
        assert state.status.kind is StatusKind.LOADED
        assert sorted(state.entities) == [1, 2]

    def test_waits_for_ids_already_in_flight(
        self, character_store, metadata_store, fetcher_factory, cast, clock
    ) -> None:
        fetcher = fetcher_factory(characters=cast)

        async def scenario():
            sync = _sync(character_store, metadata_store, fetcher, clock)
            fetcher.gate = asyncio.Event()
            single = asyncio.ensure_future(sync.load_entity(1))
            while not fetcher.entity_calls:
                await asyncio.sleep(0.001)
            many = asyncio.ensure_future(sync.load_entities([1, 2]))
            await asyncio.sleep(0.05)
            assert not many.done()
            assert sync.state.loading_ids == frozenset({1, 2})
            fetcher.gate.set()
            return await single, await many

        character, state = asyncio.run(scenario())
        assert fetcher.entity_calls == [1]
        assert fetcher.batch_calls == [[2]]
        assert state.status.kind is StatusKind.LOADED
        assert state.entities[1] == character
        assert sorted(state.entities) == [1, 2]
        assert state.loading_ids == frozenset()

    def test_partial_result_is_loaded_with_notice(
        self, character_store, metadata_store, fetcher_factory, cast, clock
    ) -> None:
        fetcher = fetcher_factory(characters=cast)

        async def scenario():
            return await _sync(character_store, metadata_store, fetcher, clock).load_entities([1, 404])

        state = asyncio.run(scenario())
        assert state.status.kind is StatusKind.LOADED
        assert "404" in state.notice
        assert list(state.entities) == [1]

    def test_nothing_held_is_failed(
        self, character_store, metadata_store, fetcher_factory, clock
    ) -> None:
        fetcher = fetcher_factory(supports_batch=False)
        fetcher.error = NetworkError("offline")

        async def scenario():
            return await _sync(character_store, metadata_store, fetcher, clock).load_entities([1, 2])

        state = asyncio.run(scenario())
        assert state.status.kind is StatusKind.FAILED
        assert str(state.status.error) == "offline"

    def test_store_failure_is_fatal(
        self, character_store, metadata_store, fetcher_factory, cast, clock, monkeypatch
    ) -> None:
        fetcher = fetcher_factory(characters=cast)

        def broken(*args, **kwargs):
            raise StoreError("Failed to write 2 characters: disk full")

        monkeypatch.setattr(character_store, "upsert_all", broken)

        async def scenario():
            return await _sync(character_store, metadata_store, fetcher, clock).load_entities([1, 2])

        state = asyncio.run(scenario())
        assert state.status.kind is StatusKind.FAILED
        assert isinstance(state.status.error, StoreError)
        assert metadata_store.entity_fetched_at(Collection.CHARACTERS, 1) is None

    def test_empty_request_is_noop(
        self, character_store, metadata_store, fetcher_factory, clock
    ) -> None:
        fetcher = fetcher_factory()

        async def scenario():
            return await _sync(character_store, metadata_store, fetcher, clock).load_entities([])

        state = asyncio.run(scenario())
        assert state.status.kind is StatusKind.IDLE
        assert fetcher.batch_calls == []


class TestRestoreAndClear:
    def test_restore_publishes_stored_characters(
        self, character_store, metadata_store, fetcher_factory, cast, clock
    ) -> None:
        character_store.upsert_all(cast)
        fetcher = fetcher_factory()

        async def scenario():
            return await _sync(character_store, metadata_store, fetcher, clock).restore()

        state = asyncio.run(scenario())
        assert sorted(state.entities) == [1, 2, 3]
        assert state.status.kind is StatusKind.IDLE

    def test_stored_without_timestamp_is_stale(
        self, character_store, metadata_store, fetcher_factory, cast, clock
    ) -> None:
        character_store.upsert_all(cast)
        fetcher = fetcher_factory(characters=cast)

        async def scenario():
            sync = _sync(character_store, metadata_store, fetcher, clock)
            await sync.restore()
            assert sync.is_fresh(1) is False
            await sync.load_entity(1)
            return sync

        sync = asyncio.run(scenario())
        assert fetcher.entity_calls == [1]
        assert sync.is_fresh(1) is True

    def test_clear_forgets_everything(
        self, character_store, metadata_store, fetcher_factory, cast, clock
    ) -> None:
        fetcher = fetcher_factory(characters=cast)

        async def scenario():
            sync = _sync(character_store, metadata_store, fetcher, clock)
            await sync.load_entities([1, 2])
            cleared = await sync.clear()
            return cleared, sync

        cleared, sync = asyncio.run(scenario())
        assert dict(cleared.entities) == {}
        assert cleared.status.kind is StatusKind.IDLE
        assert character_store.fetch_all_sorted() == []
        assert sync.fetched_at(1) is None
        assert sync.entity(1) is None
