"""Domain enums (pure, dependency-light).

Values are the strings stored by the backend, which predates this package.
"""

from __future__ import annotations

from enum import StrEnum


class EventStatus(StrEnum):
    ACTIVE = "ACTIVE"
    PROSPECT = "PROSPECT"
    COMPLETED = "COMPLETED"


class Priority(StrEnum):
    LOW = "Baixa"
    MEDIUM = "Média"
    HIGH = "Alta"

    @property
    def rank(self) -> int:
        """Sort rank, highest priority first."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


class DemandStatus(StrEnum):
    PENDING = "Pendente"
    IN_PROGRESS = "Em Andamento"
    DONE = "Concluído"


class ContactStatus(StrEnum):
    POTENTIAL = "Potential"
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class NoteColor(StrEnum):
    YELLOW = "bg-yellow-50"
    BLUE = "bg-blue-50"
    EMERALD = "bg-emerald-50"
    ROSE = "bg-rose-50"
    PURPLE = "bg-purple-50"


class EntityKind(StrEnum):
    """Discriminator for the four record collections."""

    EVENT = "event"
    DEMAND = "demand"
    CONTACT = "contact"
    NOTE = "note"

    @property
    def table(self) -> str:
        return _TABLE_BY_KIND[self]

    @classmethod
    def from_table(cls, table: str) -> EntityKind:
        try:
            return _KIND_BY_TABLE[table]
        except KeyError:
            raise ValueError(f"Unknown table: {table}") from None


_TABLE_BY_KIND = {
    EntityKind.EVENT: "events",
    EntityKind.DEMAND: "demands",
    # the backend still calls contacts "clients"
    EntityKind.CONTACT: "clients",
    EntityKind.NOTE: "notes",
}
_KIND_BY_TABLE = {table: kind for kind, table in _TABLE_BY_KIND.items()}

TABLES: tuple[str, ...] = tuple(_TABLE_BY_KIND.values())


class ChangeKind(StrEnum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
