"""Canonical Pydantic models shared across all rickdex modules.

This is the single source of truth for data shapes in the project. The
models fall into three groups:

**Entity models** -- decoded from the remote API and persisted in the
entity store:
    :class:`Episode`, :class:`Character`, :class:`Place`, plus the wire
    envelopes :class:`PageInfo`, :class:`EpisodePage` and
    :class:`CharacterPage`.

**Sync metadata models** -- persisted in the metadata file beside the
entity store:
    :class:`CollectionMetadata` and :class:`SyncMetadataFile`.

**Configuration models** -- serialised as JSON in the user's config
directory:
    :class:`RequestConfig`, :class:`OutputConfig`, :class:`StoreConfig` and
    :class:`GlobalConfig`.

All models use Pydantic v2. Entity models accept both the API's wire names
(``episode``, ``characters``) and the Python field names, and are stored
with their wire names so that a stored record decodes exactly like a
fresh one.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_BASE_URL = "https://rickandmortyapi.com/api"


# --- Collections ---


class Collection(str, enum.Enum):
    """The independently synced collections.

    The value is the key used in the metadata file and the store
    directory; :attr:`resource` is the API path segment.
    """

    EPISODES = "episodes"
    CHARACTERS = "characters"

    @property
    def resource(self) -> str:
        return {"episodes": "episode", "characters": "character"}[self.value]


# --- Parsing helpers ---


def _is_number(text: str) -> bool:
    # str.isdigit() alone also accepts digits such as "²" that int() rejects.
    return text.isascii() and text.isdigit()


def _to_int(text: str, default: int) -> int:
    return int(text) if _is_number(text) else default


def parse_episode_code(code: Optional[str]) -> tuple[int, int]:
    """Parse an ``S01E02`` style code into ``(season, episode)``.

    Parsing is lenient: a missing ``S`` or ``E`` marker, or a body that is
    not a number, yields 1 for that component instead of raising.

    Example::

        >>> parse_episode_code("S3E07")
        (3, 7)
        >>> parse_episode_code("foo")
        (1, 1)
    """
    upper = (code or "").strip().upper()
    season = 1
    episode = 1
    if upper.startswith("S") and "E" in upper[1:]:
        season = _to_int(upper[1:].split("E", 1)[0], 1)
    if "E" in upper:
        episode = _to_int(upper.split("E", 1)[1], 1)
    return season, episode


def trailing_id(ref: str) -> Optional[int]:
    """Return the integer in the last path segment of *ref*, if any.

    ``"https://rickandmortyapi.com/api/character/38"`` gives ``38``; a bare
    ``"38"`` also gives ``38``.
    """
    segment = ref.rstrip("/").rsplit("/", 1)[-1]
    return int(segment) if _is_number(segment) else None


def format_air_date(value: str) -> str:
    """Reformat ``"December 2, 2013"`` as ``"2 December 2013"``.

    Text that does not match the API's date format is returned unchanged.
    """
    try:
        parsed = datetime.strptime(value, "%B %d, %Y")
    except ValueError:
        return value
    return f"{parsed.day} {parsed.strftime('%B %Y')}"


def _as_refs(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, list):
        return [str(item) for item in value]
    return value


# --- Entities ---


class Episode(BaseModel):
    """A single episode as returned by ``GET /episode``.

    ``season_number``, ``episode_number``, ``formatted_air_date`` and
    ``character_ids`` are derived on access and never stored.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: Optional[str] = None
    air_date: Optional[str] = Field(
        default=None, description="Air date as sent by the API, e.g. 'December 2, 2013'"
    )
    episode_code: Optional[str] = Field(
        default=None, alias="episode", description="Code such as 'S01E01'"
    )
    character_refs: list[str] = Field(default_factory=list, alias="characters")
    url: Optional[str] = None
    created: Optional[str] = None

    @field_validator("character_refs", mode="before")
    @classmethod
    def normalise_refs(cls, value: Any) -> Any:
        return _as_refs(value)

    @property
    def season_number(self) -> int:
        return parse_episode_code(self.episode_code)[0]

    @property
    def episode_number(self) -> int:
        return parse_episode_code(self.episode_code)[1]

    @property
    def formatted_air_date(self) -> Optional[str]:
        if self.air_date is None:
            return None
        return format_air_date(self.air_date)

    @property
    def character_ids(self) -> list[int]:
        ids = (trailing_id(ref) for ref in self.character_refs)
        return [i for i in ids if i is not None]


class CharacterStatus(str, enum.Enum):
    """Life status reported by the API; anything else maps to ``UNKNOWN``."""

    ALIVE = "Alive"
    DEAD = "Dead"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> Optional[CharacterStatus]:
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.lower():
                    return member
        return None


class Gender(str, enum.Enum):
    """Gender reported by the API; anything else maps to ``UNKNOWN``."""

    FEMALE = "Female"
    MALE = "Male"
    GENDERLESS = "Genderless"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> Optional[Gender]:
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.lower():
                    return member
        return None


class Place(BaseModel):
    """A name + URL pair used for a character's origin and last location."""

    name: Optional[str] = None
    url: Optional[str] = None


class Character(BaseModel):
    """A single character as returned by ``GET /character/{id}``."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: Optional[str] = None
    status: CharacterStatus = CharacterStatus.UNKNOWN
    species: Optional[str] = None
    type: Optional[str] = Field(
        default=None, description="Subspecies; the API sends '' when there is none"
    )
    gender: Gender = Gender.UNKNOWN
    origin: Optional[Place] = None
    location: Optional[Place] = None
    image: Optional[str] = None
    episode_refs: list[str] = Field(default_factory=list, alias="episode")
    url: Optional[str] = None
    created: Optional[str] = None

    @field_validator("episode_refs", mode="before")
    @classmethod
    def normalise_refs(cls, value: Any) -> Any:
        return _as_refs(value)

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, value: Any) -> CharacterStatus:
        try:
            return CharacterStatus(value)
        except (TypeError, ValueError):
            return CharacterStatus.UNKNOWN

    @field_validator("gender", mode="before")
    @classmethod
    def default_gender(cls, value: Any) -> Gender:
        try:
            return Gender(value)
        except (TypeError, ValueError):
            return Gender.UNKNOWN

    @property
    def display_type(self) -> Optional[str]:
        return self.type or None

    @property
    def episode_ids(self) -> list[int]:
        ids = (trailing_id(ref) for ref in self.episode_refs)
        return [i for i in ids if i is not None]


# --- Wire envelopes ---


class PageInfo(BaseModel):
    """The ``info`` block of a paginated API response."""

    count: int
    pages: int
    next: Optional[str] = None
    prev: Optional[str] = None


class EpisodePage(BaseModel):
    info: PageInfo
    results: list[Episode] = Field(default_factory=list)


class CharacterPage(BaseModel):
    info: PageInfo
    results: list[Character] = Field(default_factory=list)


# --- Sync metadata ---


class CollectionMetadata(BaseModel):
    """Sync bookkeeping for one collection.

    ``last_fetched_at`` and the pagination fields describe the collection
    as a whole. ``entity_fetched_at`` holds per-id timestamps for
    collections loaded record by record (characters).
    """

    last_fetched_at: Optional[datetime] = None
    remote_total_count: int = 0
    current_page: int = 1
    has_more: bool = False
    next_cursor: Optional[str] = Field(
        default=None, description="The server's 'next' URL from the last page"
    )
    entity_fetched_at: dict[int, datetime] = Field(default_factory=dict)


class SyncMetadataFile(BaseModel):
    """Root document of ``sync-metadata.json``."""

    version: int = 1
    collections: dict[str, CollectionMetadata] = Field(default_factory=dict)


# --- Configuration ---


class RequestConfig(BaseModel):
    """HTTP request settings applied to every API call."""

    timeout: float = Field(default=15.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    max_retries: int = Field(default=2, description="Max retry attempts on 5xx or network errors")


class OutputConfig(BaseModel):
    """Default output format preference."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class StoreConfig(BaseModel):
    """Where the entity store and sync metadata live."""

    directory: Optional[str] = Field(
        default=None,
        description="Store directory; defaults to <cache dir>/store",
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/rickdex/config.json``.

    Loaded and saved by :func:`~rickdex.config.load_global_config` and
    :func:`~rickdex.config.save_global_config`. See
    :func:`~rickdex.config.resolve_config` for the precedence chain.
    """

    base_url: str = DEFAULT_BASE_URL
    request: RequestConfig = Field(default_factory=RequestConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
