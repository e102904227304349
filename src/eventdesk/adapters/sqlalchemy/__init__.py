"""SQLAlchemy adapter package for eventdesk."""

from __future__ import annotations

from .gateway import SqlAlchemyGateway
from .mappings import TABLE_BY_KIND, create_all_tables, metadata, table_for
from .unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    configured_engine,
    shutdown,
    startup,
)

__all__ = [
    "TABLE_BY_KIND",
    "SqlAlchemyGateway",
    "SqlAlchemyUnitOfWork",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "metadata",
    "shutdown",
    "startup",
    "table_for",
]
