from __future__ import annotations

import pytest

from eventdesk.domain.errors import ValidationError
from eventdesk.domain.model import (
    ContactStatus,
    DemandStatus,
    EntityKind,
    Event,
    EventStatus,
    NoteColor,
    Priority,
)
from eventdesk.domain.wire import column_names, patch_to_row, record_to_row, row_to_record
from tests.helpers.records import make_demand, make_note


def test_record_to_row_uses_backend_columns_and_values() -> None:
    row = record_to_row(make_demand(priority=Priority.HIGH, due_date="2024-06-20"))

    assert row == {
        "id": "demand-1",
        "event_id": "event-1",
        "title": "Book stage",
        "description": "",
        "priority": "Alta",
        "status": "Pendente",
        "due_date": "2024-06-20",
    }


def test_row_to_record_normalizes_backend_quirks() -> None:
    row = {
        "id": "e1",
        "title": "Fair",
        "date": "2024-07-01T00:00:00+00:00",
        "location": None,
        "description": None,
        "status": None,
        "image_url": "",
        "website_url": "https://fair.example",
        "created_at": "2024-01-01T00:00:00Z",
    }

    event = row_to_record(EntityKind.EVENT, row)

    assert event == Event(
        id="e1",
        title="Fair",
        date="2024-07-01",
        status=EventStatus.ACTIVE,
        website_url="https://fair.example",
    )


def test_missing_enum_columns_fall_back_to_defaults() -> None:
    demand = row_to_record(
        EntityKind.DEMAND,
        {"id": "d", "event_id": "e", "title": "t", "priority": None, "status": None},
    )
    contact = row_to_record(EntityKind.CONTACT, {"id": "c", "name": "Ana", "status": None})
    note = row_to_record(
        EntityKind.NOTE,
        {"id": "n", "content": "x", "color": None, "created_at": "2024-06-01T00:00:00Z"},
    )

    assert demand.priority is Priority.MEDIUM  # type: ignore[attr-defined]
    assert demand.status is DemandStatus.PENDING  # type: ignore[attr-defined]
    assert contact.status is ContactStatus.POTENTIAL  # type: ignore[attr-defined]
    assert note.color is NoteColor.YELLOW  # type: ignore[attr-defined]


def test_round_trip_keeps_record() -> None:
    note = make_note(due_date="2024-06-20")

    assert row_to_record(EntityKind.NOTE, record_to_row(note)) == note


@pytest.mark.parametrize(
    "row",
    [
        {"id": "e", "date": "2024-07-01"},
        {"id": "e", "title": "t", "date": "2024-07-01", "status": "ARCHIVED"},
        {"title": "t", "date": "2024-07-01"},
    ],
)
def test_malformed_rows_raise_validation_error(row: dict[str, object]) -> None:
    with pytest.raises(ValidationError):
        row_to_record(EntityKind.EVENT, row)


def test_patch_to_row_converts_enums() -> None:
    assert patch_to_row(EntityKind.DEMAND, {"status": DemandStatus.DONE}) == {"status": "Concluído"}


def test_patch_rejects_unknown_fields_and_id() -> None:
    with pytest.raises(ValidationError) as exc:
        patch_to_row(EntityKind.NOTE, {"colour": "red"})
    assert exc.value.field == "colour"

    with pytest.raises(ValidationError):
        patch_to_row(EntityKind.NOTE, {"id": "other"})


def test_column_names_match_tables() -> None:
    assert column_names(EntityKind.CONTACT) == {
        "id",
        "name",
        "company",
        "role",
        "email",
        "phone",
        "status",
        "notes",
    }
