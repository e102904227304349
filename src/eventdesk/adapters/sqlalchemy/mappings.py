"""SQLAlchemy Core tables mirroring the hosted backend schema."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

from sqlalchemy import Column, ForeignKey, Index, MetaData, String, Table, Text, event

from eventdesk.domain.model import EntityKind

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

metadata = MetaData()

ID_LENGTH: Final[int] = 36

events_table = Table(
    "events",
    metadata,
    Column("id", String(ID_LENGTH), primary_key=True),
    Column("title", Text, nullable=False),
    Column("date", String(10), nullable=False),
    Column("location", Text, nullable=False, default=""),
    Column("description", Text, nullable=False, default=""),
    Column("status", String(16), nullable=False, default="ACTIVE"),
    Column("image_url", Text, nullable=True),
    Column("website_url", Text, nullable=True),
)

demands_table = Table(
    "demands",
    metadata,
    Column("id", String(ID_LENGTH), primary_key=True),
    Column(
        "event_id",
        String(ID_LENGTH),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("title", Text, nullable=False),
    Column("description", Text, nullable=False, default=""),
    Column("priority", String(16), nullable=False, default="Média"),
    Column("status", String(16), nullable=False, default="Pendente"),
    Column("due_date", String(10), nullable=True),
    Index("ix_demands_event_id", "event_id"),
)

clients_table = Table(
    "clients",
    metadata,
    Column("id", String(ID_LENGTH), primary_key=True),
    Column("name", Text, nullable=False),
    Column("company", Text, nullable=False, default=""),
    Column("role", Text, nullable=False, default=""),
    Column("email", Text, nullable=False, default=""),
    Column("phone", Text, nullable=False, default=""),
    Column("status", String(16), nullable=False, default="Potential"),
    Column("notes", Text, nullable=False, default=""),
)

notes_table = Table(
    "notes",
    metadata,
    Column("id", String(ID_LENGTH), primary_key=True),
    Column("content", Text, nullable=False),
    Column("color", String(32), nullable=False, default="bg-yellow-50"),
    Column("created_at", String(40), nullable=False),
    Column("due_date", String(10), nullable=True),
)

TABLE_BY_KIND: dict[EntityKind, Table] = {
    EntityKind.EVENT: events_table,
    EntityKind.DEMAND: demands_table,
    EntityKind.CONTACT: clients_table,
    EntityKind.NOTE: notes_table,
}


def table_for(name: str) -> Table:
    """Look up a table by its backend name; raises ``ValueError`` when unknown."""

    return TABLE_BY_KIND[EntityKind.from_table(name)]


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """SQLite only enforces ``ON DELETE CASCADE`` with the pragma switched on."""

    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, connection_record) -> None:  # noqa: ANN001, ARG001  # pyright: ignore[reportUnusedFunction]
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_all_tables(engine: Engine) -> None:
    metadata.create_all(engine)
    log.debug("Ensured tables: %s", ", ".join(sorted(metadata.tables)))
