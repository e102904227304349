"""Wire schema and mapping for records crossing the persistence boundary.

Every row read from the gateway or the change feed is validated against the
table's row model before it becomes a record, and every record or patch sent
out is dumped through the same model. Column names are the record field names;
unknown columns (``created_at`` on events, server bookkeeping) are dropped.
"""

from __future__ import annotations

import dataclasses
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import ValidationError as PydanticValidationError

from eventdesk.domain.errors import ValidationError
from eventdesk.domain.model import (
    RECORD_TYPES,
    ContactStatus,
    DemandStatus,
    EntityKind,
    EventStatus,
    NoteColor,
    Priority,
    Record,
)

if TYPE_CHECKING:
    from collections.abc import Mapping


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _none_to_blank(value: object) -> object:
    return "" if value is None else value


def _day_only(value: object) -> object:
    # timestamps coming back from date columns carry a time part
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        return stripped.split("T", 1)[0]
    return value


class RowModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str


class EventRow(RowModel):
    title: str
    date: str
    location: str = ""
    description: str = ""
    status: EventStatus = EventStatus.ACTIVE
    image_url: str | None = None
    website_url: str | None = None

    _normalize_text = field_validator("location", "description", mode="before")(_none_to_blank)
    _normalize_optional = field_validator("image_url", "website_url", mode="before")(
        _blank_to_none
    )
    _normalize_date = field_validator("date", mode="before")(_day_only)

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, value: object) -> object:
        return EventStatus.ACTIVE if value is None else value


class DemandRow(RowModel):
    event_id: str
    title: str
    description: str = ""
    priority: Priority = Priority.MEDIUM
    status: DemandStatus = DemandStatus.PENDING
    due_date: str | None = None

    _normalize_text = field_validator("description", mode="before")(_none_to_blank)
    _normalize_due = field_validator("due_date", mode="before")(_day_only)

    @field_validator("priority", mode="before")
    @classmethod
    def _default_priority(cls, value: object) -> object:
        return Priority.MEDIUM if value is None else value

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, value: object) -> object:
        return DemandStatus.PENDING if value is None else value


class ContactRow(RowModel):
    name: str
    company: str = ""
    role: str = ""
    email: str = ""
    phone: str = ""
    status: ContactStatus = ContactStatus.POTENTIAL
    notes: str = ""

    _normalize_text = field_validator(
        "company", "role", "email", "phone", "notes", mode="before"
    )(_none_to_blank)

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, value: object) -> object:
        return ContactStatus.POTENTIAL if value is None else value


class NoteRow(RowModel):
    content: str
    color: NoteColor = NoteColor.YELLOW
    created_at: str
    due_date: str | None = None

    _normalize_due = field_validator("due_date", mode="before")(_day_only)

    @field_validator("color", mode="before")
    @classmethod
    def _default_color(cls, value: object) -> object:
        return NoteColor.YELLOW if value is None else value


ROW_MODELS: dict[EntityKind, type[RowModel]] = {
    EntityKind.EVENT: EventRow,
    EntityKind.DEMAND: DemandRow,
    EntityKind.CONTACT: ContactRow,
    EntityKind.NOTE: NoteRow,
}


# assigned at creation and never patched
_FIXED_FIELDS: dict[EntityKind, frozenset[str]] = {
    EntityKind.NOTE: frozenset({"color", "created_at"}),
}


def column_names(kind: EntityKind) -> frozenset[str]:
    return frozenset(ROW_MODELS[kind].model_fields)


def record_to_row(record: Record) -> dict[str, object]:
    """Dump a full record as a wire row."""

    try:
        model = ROW_MODELS[record.kind].model_validate(dataclasses.asdict(record))
    except PydanticValidationError as exc:
        raise ValidationError(
            f"Invalid {record.kind} {record.id} ({exc.error_count()} error(s))"
        ) from exc
    return model.model_dump(mode="json")


def row_to_record(kind: EntityKind, row: Mapping[str, object]) -> Record:
    """Validate a wire row and build the record it describes."""

    try:
        model = ROW_MODELS[kind].model_validate(dict(row))
    except PydanticValidationError as exc:
        raise ValidationError(
            f"Malformed {kind.table} row ({exc.error_count()} error(s)): {row.get('id')!r}"
        ) from exc
    return RECORD_TYPES[kind](**model.model_dump())


def patch_to_row(kind: EntityKind, patch: Mapping[str, object]) -> dict[str, object]:
    """Translate a field patch into the wire columns sent with an update."""

    check_patch(kind, patch)
    return {name: _wire_value(value) for name, value in patch.items()}


def check_patch(kind: EntityKind, patch: Mapping[str, object]) -> None:
    if "id" in patch:
        raise ValidationError("Record ids cannot be changed", field="id")
    fixed = sorted(set(patch) & _FIXED_FIELDS.get(kind, frozenset()))
    if fixed:
        raise ValidationError(f"{kind.capitalize()} {fixed[0]} cannot be changed", field=fixed[0])
    unknown = sorted(set(patch) - column_names(kind))
    if unknown:
        raise ValidationError(
            f"Unknown {kind} field(s): {', '.join(unknown)}",
            field=unknown[0],
        )


def _wire_value(value: object) -> object:
    if isinstance(value, Enum):
        return value.value
    return value
