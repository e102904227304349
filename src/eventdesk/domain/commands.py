"""Command boundary between user input and the reconciling store.

Every command validates its input first; a rejected command raises
``ValidationError`` and leaves the store untouched.
"""

from __future__ import annotations

import random
import re
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, cast

from eventdesk.domain.errors import NotFoundError, ValidationError
from eventdesk.domain.model import (
    Contact,
    ContactStatus,
    Demand,
    DemandStatus,
    EntityKind,
    Event,
    EventStatus,
    Note,
    NoteColor,
    Priority,
    new_id,
    utcnow_iso,
)
from eventdesk.domain.views import parse_day

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from eventdesk.domain.assistant import DemandSuggestion
    from eventdesk.domain.store import ReconcilingStore

log = getLogger(__name__)

_SCHEME = re.compile(r"^https?://", re.IGNORECASE)
MAX_IMAGE_BYTES = 5 * 1024 * 1024


def normalize_url(value: str | None) -> str | None:
    """Prefix ``https://`` when a link has no scheme."""

    if value is None or not value.strip():
        return None
    cleaned = value.strip()
    if _SCHEME.match(cleaned):
        return cleaned
    return f"https://{cleaned}"


def _required_text(value: str | None, field_name: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field_name.capitalize()} is required", field=field_name)
    return value.strip()


def _optional_day(value: str | None, field_name: str) -> str | None:
    if value is None or not value.strip():
        return None
    day = parse_day(value)
    if day is None:
        raise ValidationError(f"Invalid {field_name}: {value!r} (expected YYYY-MM-DD)", field=field_name)
    return day.isoformat()


def _required_day(value: str | None, field_name: str) -> str:
    day = _optional_day(_required_text(value, field_name), field_name)
    return cast("str", day)


def _checked_image(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    cleaned = value.strip()
    if cleaned.startswith("data:"):
        payload = cleaned.partition(",")[2]
        if len(payload) * 3 // 4 > MAX_IMAGE_BYTES:
            raise ValidationError("Image is larger than 5 MB", field="image_url")
    return cleaned


def _random_color() -> NoteColor:
    return random.choice(tuple(NoteColor))  # noqa: S311


@dataclass(slots=True)
class DashboardCommands:
    """User-level operations on events, demands, contacts and notes."""

    store: ReconcilingStore
    choose_color: Callable[[], NoteColor] = field(default=_random_color)

    # Events ------------------------------------------------------------------

    def save_event(
        self,
        *,
        title: str | None,
        date: str | None,
        location: str = "",
        description: str = "",
        status: EventStatus | str | None = None,
        image_url: str | None = None,
        website_url: str | None = None,
        event_id: str | None = None,
    ) -> Event:
        """Create an event, or replace every field of ``event_id`` when given."""

        event = Event(
            id=event_id or new_id(),
            title=_required_text(title, "title"),
            date=_required_day(date, "date"),
            location=location.strip(),
            description=description.strip(),
            status=_coerce(EventStatus, status, EventStatus.ACTIVE, "status"),
            image_url=_checked_image(image_url),
            website_url=normalize_url(website_url),
        )
        if event_id is None:
            return cast("Event", self.store.apply_local_insert(event))
        patch = {name: getattr(event, name) for name in _EVENT_FIELDS}
        return cast("Event", self.store.apply_local_update(EntityKind.EVENT, event_id, patch))

    def complete_event(self, event_id: str) -> Event | None:
        return cast("Event | None", self._set_status(EntityKind.EVENT, event_id, EventStatus.COMPLETED))

    def restore_event(self, event_id: str) -> Event | None:
        return cast("Event | None", self._set_status(EntityKind.EVENT, event_id, EventStatus.ACTIVE))

    def delete_event(self, event_id: str) -> bool:
        return self.store.apply_local_delete(EntityKind.EVENT, event_id)

    # Demands -----------------------------------------------------------------

    def save_demand(
        self,
        *,
        title: str | None,
        event_id: str | None = None,
        description: str = "",
        priority: Priority | str | None = None,
        status: DemandStatus | str | None = None,
        due_date: str | None = None,
        demand_id: str | None = None,
    ) -> Demand:
        """Create or replace a demand.

        Without ``event_id`` the only existing event is used; with several
        events the caller has to pick one.
        """

        demand = self.build_demand(
            title=title,
            event_id=event_id,
            description=description,
            priority=priority,
            status=status,
            due_date=due_date,
            demand_id=demand_id,
        )
        if demand_id is None:
            return cast("Demand", self.store.apply_local_insert(demand))
        patch = {name: getattr(demand, name) for name in _DEMAND_FIELDS}
        return cast("Demand", self.store.apply_local_update(EntityKind.DEMAND, demand_id, patch))

    def build_demand(
        self,
        *,
        title: str | None,
        event_id: str | None = None,
        description: str = "",
        priority: Priority | str | None = None,
        status: DemandStatus | str | None = None,
        due_date: str | None = None,
        demand_id: str | None = None,
    ) -> Demand:
        """Validate a demand without touching the store."""

        clean_title = _required_text(title, "title")
        target_event = event_id or self._only_event_id()
        if self.store.find(EntityKind.EVENT, target_event) is None:
            raise ValidationError(f"Unknown event {target_event}", field="event_id")
        return Demand(
            id=demand_id or new_id(),
            event_id=target_event,
            title=clean_title,
            description=description.strip(),
            priority=_coerce(Priority, priority, Priority.MEDIUM, "priority"),
            status=_coerce(DemandStatus, status, DemandStatus.PENDING, "status"),
            due_date=_optional_day(due_date, "due_date"),
        )

    def add_demands(self, demands: Iterable[Demand]) -> list[Demand]:
        """Insert demands that ``build_demand`` already validated."""

        return [cast("Demand", self.store.apply_local_insert(demand)) for demand in demands]

    def complete_demand(self, demand_id: str) -> Demand | None:
        return cast("Demand | None", self._set_status(EntityKind.DEMAND, demand_id, DemandStatus.DONE))

    def restore_demand(self, demand_id: str) -> Demand | None:
        return cast(
            "Demand | None", self._set_status(EntityKind.DEMAND, demand_id, DemandStatus.PENDING)
        )

    def delete_demand(self, demand_id: str) -> bool:
        return self.store.apply_local_delete(EntityKind.DEMAND, demand_id)

    def accept_suggestions(
        self,
        event_id: str,
        suggestions: Iterable[DemandSuggestion],
    ) -> list[Demand]:
        """Turn assistant suggestions into pending demands of ``event_id``."""

        if self.store.find(EntityKind.EVENT, event_id) is None:
            raise ValidationError(f"Unknown event {event_id}", field="event_id")
        drafts = [
            self.build_demand(
                title=suggestion.title,
                event_id=event_id,
                description=suggestion.description,
                priority=suggestion.priority,
            )
            for suggestion in suggestions
            if suggestion.title.strip()
        ]
        return self.add_demands(drafts)

    # Contacts ----------------------------------------------------------------

    def save_contact(
        self,
        *,
        name: str | None,
        company: str = "",
        role: str = "",
        email: str = "",
        phone: str = "",
        status: ContactStatus | str | None = None,
        notes: str = "",
        contact_id: str | None = None,
    ) -> Contact:
        contact = Contact(
            id=contact_id or new_id(),
            name=_required_text(name, "name"),
            company=company.strip(),
            role=role.strip(),
            email=email.strip(),
            phone=phone.strip(),
            status=_coerce(ContactStatus, status, ContactStatus.POTENTIAL, "status"),
            notes=notes.strip(),
        )
        if contact_id is None:
            return cast("Contact", self.store.apply_local_insert(contact))
        patch = {name: getattr(contact, name) for name in _CONTACT_FIELDS}
        return cast("Contact", self.store.apply_local_update(EntityKind.CONTACT, contact_id, patch))

    def delete_contact(self, contact_id: str) -> bool:
        return self.store.apply_local_delete(EntityKind.CONTACT, contact_id)

    # Notes -------------------------------------------------------------------

    def save_note(
        self,
        *,
        content: str | None,
        due_date: str | None = None,
        note_id: str | None = None,
    ) -> Note:
        """Create a note with a fresh color, or edit content and due date only."""

        clean_content = _required_text(content, "content")
        clean_due = _optional_day(due_date, "due_date")
        if note_id is not None:
            patch: dict[str, object] = {"content": clean_content, "due_date": clean_due}
            return cast("Note", self.store.apply_local_update(EntityKind.NOTE, note_id, patch))
        note = Note(
            content=clean_content,
            due_date=clean_due,
            color=self.choose_color(),
            created_at=utcnow_iso(),
        )
        return cast("Note", self.store.apply_local_insert(note))

    def delete_note(self, note_id: str) -> bool:
        return self.store.apply_local_delete(EntityKind.NOTE, note_id)

    # Helpers -----------------------------------------------------------------

    def _only_event_id(self) -> str:
        events = self.store.events
        if len(events) == 1:
            return events[0].id
        raise ValidationError("Select an event for the demand", field="event_id")

    def _set_status(self, kind: EntityKind, record_id: str, status: object) -> object:
        try:
            return self.store.apply_local_update(kind, record_id, {"status": status})
        except NotFoundError:
            log.info("Ignoring status change for missing %s %s", kind, record_id)
            return None


def _coerce[TEnum: (EventStatus, Priority, DemandStatus, ContactStatus)](
    enum_type: type[TEnum],
    value: TEnum | str | None,
    default: TEnum,
    field_name: str,
) -> TEnum:
    if value is None or value == "":
        return default
    if isinstance(value, enum_type):
        return value
    text = str(value).strip()
    key = text.replace("-", "_").replace(" ", "_").casefold()
    for member in enum_type:
        if text == member.value or key == member.name.casefold():
            return member
    raise ValidationError(f"Invalid {field_name}: {value!r}", field=field_name)


_EVENT_FIELDS = ("title", "date", "location", "description", "status", "image_url", "website_url")
_DEMAND_FIELDS = ("event_id", "title", "description", "priority", "status", "due_date")
_CONTACT_FIELDS = ("name", "company", "role", "email", "phone", "status", "notes")
