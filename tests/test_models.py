"""Tests for rickdex.models -- decoding, derived fields and lenient parsing."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from rickdex.models import (
    Character,
    CharacterStatus,
    Collection,
    CollectionMetadata,
    Episode,
    EpisodePage,
    Gender,
    GlobalConfig,
    SyncMetadataFile,
    format_air_date,
    parse_episode_code,
    trailing_id,
)


# ---------------------------------------------------------------------------
# Episode codes
# ---------------------------------------------------------------------------


class TestParseEpisodeCode:
    @pytest.mark.parametrize(
        ("code", "expected"),
        [
            ("S01E01", (1, 1)),
            ("S3E07", (3, 7)),
            ("s02e10", (2, 10)),
            ("foo", (1, 1)),
            ("", (1, 1)),
            (None, (1, 1)),
            ("S05", (1, 1)),
            ("E04", (1, 4)),
            ("SxxE03", (1, 3)),
            ("S²E01", (1, 1)),
            ("S02E٣", (2, 1)),
        ],
    )
    def test_lenient_parsing(self, code, expected) -> None:
        assert parse_episode_code(code) == expected


class TestHelpers:
    def test_trailing_id_from_url(self) -> None:
        assert trailing_id("https://rickandmortyapi.com/api/character/38") == 38

    def test_trailing_id_with_trailing_slash(self) -> None:
        assert trailing_id("https://rickandmortyapi.com/api/character/38/") == 38

    def test_trailing_id_not_numeric(self) -> None:
        assert trailing_id("https://rickandmortyapi.com/api/character/") is None

    def test_trailing_id_non_ascii_digits(self) -> None:
        assert trailing_id("https://rickandmortyapi.com/api/character/²") is None
        assert trailing_id("https://rickandmortyapi.com/api/character/٣٨") is None

    def test_format_air_date(self) -> None:
        assert format_air_date("December 2, 2013") == "2 December 2013"

    def test_format_air_date_passthrough(self) -> None:
        assert format_air_date("sometime in 2013") == "sometime in 2013"


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


class TestEpisode:
    def test_decodes_wire_names(self, episode_factory) -> None:
        episode = episode_factory(12, character_ids=[1, 2, 35])
        assert episode.episode_code == "S02E02"
        assert episode.season_number == 2
        assert episode.episode_number == 2
        assert episode.character_ids == [1, 2, 35]
        assert episode.formatted_air_date == "2 December 2013"

    def test_missing_optional_fields(self) -> None:
        episode = Episode.model_validate({"id": 3})
        assert episode.name is None
        assert episode.character_refs == []
        assert episode.season_number == 1
        assert episode.formatted_air_date is None

    def test_null_characters_becomes_empty(self) -> None:
        episode = Episode.model_validate({"id": 3, "characters": None})
        assert episode.character_ids == []

    def test_missing_id_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Episode.model_validate({"name": "Pilot"})

    def test_dump_by_alias_roundtrips(self, episode_factory) -> None:
        episode = episode_factory(1)
        dumped = episode.model_dump(mode="json", by_alias=True)
        assert "episode" in dumped and "characters" in dumped
        assert Episode.model_validate(dumped) == episode


class TestCharacter:
    def test_decodes_full_record(self, character_factory) -> None:
        character = character_factory(1, name="Rick Sanchez", episodes=3)
        assert character.status is CharacterStatus.ALIVE
        assert character.gender is Gender.MALE
        assert character.origin.name == "Earth (C-137)"
        assert character.episode_ids == [1, 2, 3]

    def test_empty_type_is_not_displayed(self, character_factory) -> None:
        assert character_factory(1).display_type is None

    def test_status_is_case_insensitive(self) -> None:
        character = Character.model_validate({"id": 1, "status": "dead"})
        assert character.status is CharacterStatus.DEAD

    def test_unexpected_status_and_gender_map_to_unknown(self) -> None:
        character = Character.model_validate({"id": 1, "status": "Ghost", "gender": 7})
        assert character.status is CharacterStatus.UNKNOWN
        assert character.gender is Gender.UNKNOWN


class TestEnvelopes:
    def test_episode_page(self, episode_factory) -> None:
        page = EpisodePage.model_validate(
            {
                "info": {"count": 51, "pages": 3, "next": "x?page=2", "prev": None},
                "results": [episode_factory(1).model_dump(mode="json", by_alias=True)],
            }
        )
        assert page.info.count == 51
        assert page.results[0].id == 1

    def test_collection_resource(self) -> None:
        assert Collection.EPISODES.resource == "episode"
        assert Collection.CHARACTERS.resource == "character"


class TestMetadataModels:
    def test_defaults(self) -> None:
        metadata = CollectionMetadata()
        assert metadata.last_fetched_at is None
        assert metadata.current_page == 1
        assert metadata.has_more is False
        assert metadata.remote_total_count == 0

    def test_file_roundtrip_keeps_int_keys(self) -> None:
        document = SyncMetadataFile.model_validate(
            {
                "collections": {
                    "characters": {
                        "entity_fetched_at": {"7": "2025-06-20T12:00:00+00:00"},
                    }
                }
            }
        )
        assert 7 in document.collections["characters"].entity_fetched_at

    def test_global_config_defaults(self) -> None:
        config = GlobalConfig()
        assert config.base_url == "https://rickandmortyapi.com/api"
        assert config.request.max_retries == 2
        assert config.store.directory is None
