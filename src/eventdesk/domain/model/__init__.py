"""Domain model package."""

from __future__ import annotations

from .enums import (
    TABLES,
    ChangeKind,
    ContactStatus,
    DemandStatus,
    EntityKind,
    EventStatus,
    NoteColor,
    Priority,
)
from .records import RECORD_TYPES, Contact, Demand, Event, Note, Record, new_id, utcnow_iso

__all__ = [
    "RECORD_TYPES",
    "TABLES",
    "ChangeKind",
    "Contact",
    "ContactStatus",
    "Demand",
    "DemandStatus",
    "EntityKind",
    "Event",
    "EventStatus",
    "Note",
    "NoteColor",
    "Priority",
    "Record",
    "new_id",
    "utcnow_iso",
]
