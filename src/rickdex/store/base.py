"""Abstract entity store consumed by the sync engine.

An :class:`EntityStore` is durable keyed storage for one entity kind
(episodes or characters). Every method either succeeds or raises
:class:`~rickdex.exceptions.StoreError`; a failed write never reports
success.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, Iterable, Optional, TypeVar

from pydantic import BaseModel

EntityT = TypeVar("EntityT", bound=BaseModel)


class EntityStore(ABC, Generic[EntityT]):
    """Keyed storage for entities that carry an integer ``id``."""

    @abstractmethod
    def upsert(self, entity: EntityT) -> None:
        """Replace the stored copy of ``entity.id`` with *entity*."""

    @abstractmethod
    def upsert_all(self, entities: Iterable[EntityT]) -> None:
        """Replace the stored copies of all *entities* in one transaction."""

    @abstractmethod
    def fetch_by_id(self, entity_id: int) -> Optional[EntityT]:
        """Return the stored entity with *entity_id*, or ``None``."""

    @abstractmethod
    def fetch_all_sorted(self) -> list[EntityT]:
        """Return every stored entity, sorted by id ascending."""

    @abstractmethod
    def delete_all(self) -> None:
        """Remove every entity of this kind."""

    @abstractmethod
    def replace_all(self, entities: Iterable[EntityT]) -> None:
        """Make *entities* the only stored entities, in one transaction."""

    def close(self) -> None:
        """Release underlying resources. The default does nothing."""
