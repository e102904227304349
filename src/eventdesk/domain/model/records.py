"""Record types held by the reconciling store.

Records are flat and replaced wholesale; nothing mutates them in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import ClassVar
from uuid import uuid4

from .enums import ContactStatus, DemandStatus, EntityKind, EventStatus, NoteColor, Priority


def new_id() -> str:
    return str(uuid4())


def utcnow_iso() -> str:
    return datetime.now(UTC).isoformat()


@dataclass(frozen=True, kw_only=True)
class Record:
    """Base record: identity is a client-generated UUID string."""

    id: str = field(default_factory=new_id)

    # class-level discriminator; subclasses must override
    KIND: ClassVar[EntityKind]

    @property
    def kind(self) -> EntityKind:
        return self.KIND


@dataclass(frozen=True, kw_only=True)
class Event(Record):
    KIND: ClassVar[EntityKind] = EntityKind.EVENT

    title: str
    date: str
    location: str = ""
    description: str = ""
    status: EventStatus = EventStatus.ACTIVE
    image_url: str | None = None
    website_url: str | None = None

    @property
    def is_open(self) -> bool:
        return self.status in (EventStatus.ACTIVE, EventStatus.PROSPECT)


@dataclass(frozen=True, kw_only=True)
class Demand(Record):
    KIND: ClassVar[EntityKind] = EntityKind.DEMAND

    event_id: str
    title: str
    description: str = ""
    priority: Priority = Priority.MEDIUM
    status: DemandStatus = DemandStatus.PENDING
    due_date: str | None = None

    @property
    def is_done(self) -> bool:
        return self.status is DemandStatus.DONE


@dataclass(frozen=True, kw_only=True)
class Contact(Record):
    KIND: ClassVar[EntityKind] = EntityKind.CONTACT

    name: str
    company: str = ""
    role: str = ""
    email: str = ""
    phone: str = ""
    status: ContactStatus = ContactStatus.POTENTIAL
    notes: str = ""


@dataclass(frozen=True, kw_only=True)
class Note(Record):
    KIND: ClassVar[EntityKind] = EntityKind.NOTE

    content: str
    color: NoteColor = NoteColor.YELLOW
    created_at: str = field(default_factory=utcnow_iso)
    due_date: str | None = None


RECORD_TYPES: dict[EntityKind, type[Record]] = {
    EntityKind.EVENT: Event,
    EntityKind.DEMAND: Demand,
    EntityKind.CONTACT: Contact,
    EntityKind.NOTE: Note,
}
