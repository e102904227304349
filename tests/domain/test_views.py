from __future__ import annotations

from datetime import date

import pytest

from eventdesk.domain.model import DemandStatus, EventStatus, Priority
from eventdesk.domain.views import (
    active_demands,
    active_events,
    calendar_month,
    completed_events,
    dashboard_summary,
    demands_for_day,
    done_demands,
    is_overdue,
    overdue_demands,
    parse_day,
    recent_notes,
    sorted_contacts,
    urgent_demands,
)
from tests.helpers.records import make_contact, make_demand, make_event, make_note

TODAY = date(2024, 6, 15)


@pytest.mark.parametrize(
    ("due", "expected"),
    [
        ("2024-06-14", True),
        ("2024-06-15", False),
        ("2024-06-16", False),
        ("2024-06-14T23:59:59Z", True),
        (None, False),
        ("", False),
        ("not a date", False),
    ],
)
def test_is_overdue(due: str | None, expected: bool) -> None:
    assert is_overdue(due, TODAY) is expected


def test_parse_day_drops_time_part() -> None:
    assert parse_day("2024-06-15T10:00:00+02:00") == date(2024, 6, 15)
    assert parse_day("15/06/2024") is None


def test_active_demands_order() -> None:
    demands = [
        make_demand("low later", id="a", priority=Priority.LOW, due_date="2024-06-20"),
        make_demand("high no date", id="b", priority=Priority.HIGH),
        make_demand("high soon", id="c", priority=Priority.HIGH, due_date="2024-06-18"),
        make_demand("low overdue", id="d", priority=Priority.LOW, due_date="2024-06-10"),
        make_demand("done", id="e", status=DemandStatus.DONE, due_date="2024-06-01"),
        make_demand("medium", id="f", priority=Priority.MEDIUM, due_date="2024-06-16"),
    ]

    ordered = [d.id for d in active_demands(demands, TODAY)]

    assert ordered == ["d", "c", "b", "f", "a"]


def test_urgent_demands_are_open_high_priority_by_due_date() -> None:
    demands = [
        make_demand(id="a", priority=Priority.HIGH, due_date="2024-06-30"),
        make_demand(id="b", priority=Priority.HIGH),
        make_demand(id="c", priority=Priority.HIGH, due_date="2024-06-20"),
        make_demand(id="d", priority=Priority.HIGH, due_date="2024-06-01", status=DemandStatus.DONE),
        make_demand(id="e", priority=Priority.MEDIUM, due_date="2024-06-02"),
        make_demand(id="f", priority=Priority.HIGH, due_date="2024-06-25"),
    ]

    assert [d.id for d in urgent_demands(demands)] == ["c", "f", "a"]


def test_overdue_and_done_filters() -> None:
    demands = [
        make_demand(id="late", due_date="2024-06-01"),
        make_demand(id="late-done", due_date="2024-06-01", status=DemandStatus.DONE),
        make_demand(id="future", due_date="2024-07-01"),
    ]

    assert [d.id for d in overdue_demands(demands, TODAY)] == ["late"]
    assert [d.id for d in done_demands(demands)] == ["late-done"]


def test_recent_notes_newest_three() -> None:
    notes = [
        make_note(id=f"n{i}", created_at=f"2024-06-0{i}T08:00:00+00:00") for i in range(1, 6)
    ]

    assert [n.id for n in recent_notes(notes)] == ["n5", "n4", "n3"]


def test_events_split_by_status() -> None:
    events = [
        make_event(id="late", date="2024-09-01"),
        make_event(id="prospect", date="2024-07-01", status=EventStatus.PROSPECT),
        make_event(id="done", date="2024-05-01", status=EventStatus.COMPLETED),
    ]

    assert [e.id for e in active_events(events)] == ["prospect", "late"]
    assert [e.id for e in completed_events(events)] == ["done"]


def test_contacts_sorted_case_insensitively() -> None:
    contacts = [make_contact("bruno", id="b"), make_contact("Ana", id="a"), make_contact("Carla", id="c")]

    assert [c.id for c in sorted_contacts(contacts)] == ["a", "b", "c"]


def test_calendar_groups_by_due_day() -> None:
    demands = [
        make_demand(id="a", due_date="2024-06-15"),
        make_demand(id="b", due_date="2024-06-15"),
        make_demand(id="c", due_date="2024-06-30"),
        make_demand(id="d", due_date="2024-07-01"),
        make_demand(id="e"),
    ]

    month = calendar_month(demands, 2024, 6)

    assert {day: [d.id for d in items] for day, items in month.items()} == {
        15: ["a", "b"],
        30: ["c"],
    }
    assert [d.id for d in demands_for_day(demands, TODAY)] == ["a", "b"]


def test_dashboard_summary_counts() -> None:
    events = [make_event(id="a"), make_event(id="p", status=EventStatus.PROSPECT)]
    demands = [
        make_demand(id="x", due_date="2024-06-10", priority=Priority.HIGH),
        make_demand(id="y", status=DemandStatus.DONE),
        make_demand(id="z"),
    ]
    notes = [make_note()]

    summary = dashboard_summary(events, demands, notes, TODAY)

    assert summary.active_events == 1
    assert summary.open_demands == 2
    assert summary.overdue_demands == 1
    assert [d.id for d in summary.urgent] == ["x"]
    assert len(summary.recent_notes) == 1
