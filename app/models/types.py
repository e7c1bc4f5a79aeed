from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class ManagedByKind(str, Enum):
    """Which kind of entity manages an agent."""

    FRANCHISE = "FRANCHISE"
    RELATIONSHIP_MANAGER = "RELATIONSHIP_MANAGER"


@dataclass(frozen=True, slots=True)
class ManagedBy:
    """An agent is managed either by a Franchise or by a RelationshipManager, never both."""

    kind: ManagedByKind
    id: UUID

    @classmethod
    def franchise(cls, franchise_id: UUID) -> "ManagedBy":
        return cls(ManagedByKind.FRANCHISE, franchise_id)

    @classmethod
    def relationship_manager(cls, relationship_manager_id: UUID) -> "ManagedBy":
        return cls(ManagedByKind.RELATIONSHIP_MANAGER, relationship_manager_id)


__all__ = ["ManagedBy", "ManagedByKind"]
