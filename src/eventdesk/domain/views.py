"""Display-order derivations over store snapshots.

Nothing here mutates records; every function takes the tuples returned by the
store and returns a new, sorted or filtered, list.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from eventdesk.domain.model import EventStatus, Priority

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from eventdesk.domain.model import Contact, Demand, Event, Note


def parse_day(value: str | None) -> date | None:
    """Parse the calendar-day part of ``value``; ``None`` when absent or invalid."""

    if not value:
        return None
    try:
        return date.fromisoformat(value.strip().split("T", 1)[0])
    except ValueError:
        return None


def is_overdue(due_date: str | None, today: date) -> bool:
    """A due date strictly before ``today`` is overdue; no due date never is."""

    due = parse_day(due_date)
    return due is not None and due < today


def _due_key(demand: Demand) -> tuple[bool, date]:
    # missing due dates sort last
    due = parse_day(demand.due_date)
    return (due is None, due or date.max)


def active_demands(demands: Iterable[Demand], today: date) -> list[Demand]:
    """Open demands: overdue first, then by priority, then by due date."""

    return sorted(
        (d for d in demands if not d.is_done),
        key=lambda d: (not is_overdue(d.due_date, today), d.priority.rank, *_due_key(d)),
    )


def urgent_demands(demands: Iterable[Demand], *, limit: int = 3) -> list[Demand]:
    urgent = (d for d in demands if not d.is_done and d.priority is Priority.HIGH)
    return sorted(urgent, key=_due_key)[:limit]


def overdue_demands(demands: Iterable[Demand], today: date) -> list[Demand]:
    return [d for d in demands if not d.is_done and is_overdue(d.due_date, today)]


def demands_for_event(demands: Iterable[Demand], event_id: str) -> list[Demand]:
    return [d for d in demands if d.event_id == event_id]


def done_demands(demands: Iterable[Demand]) -> list[Demand]:
    return [d for d in demands if d.is_done]


def recent_notes(notes: Iterable[Note], *, limit: int = 3) -> list[Note]:
    return sorted(notes, key=lambda n: n.created_at, reverse=True)[:limit]


def active_events(events: Iterable[Event]) -> list[Event]:
    """Active and prospect events, soonest first."""

    return sorted(
        (e for e in events if e.is_open),
        key=lambda e: parse_day(e.date) or date.max,
    )


def completed_events(events: Iterable[Event]) -> list[Event]:
    return [e for e in events if e.status is EventStatus.COMPLETED]


def sorted_contacts(contacts: Iterable[Contact]) -> list[Contact]:
    return sorted(contacts, key=lambda c: c.name.casefold())


def demands_for_day(demands: Iterable[Demand], day: date) -> list[Demand]:
    return [d for d in demands if parse_day(d.due_date) == day]


def calendar_month(demands: Iterable[Demand], year: int, month: int) -> dict[int, list[Demand]]:
    """Demands due in the given month, keyed by day of month."""

    by_day: dict[int, list[Demand]] = defaultdict(list)
    for demand in demands:
        due = parse_day(demand.due_date)
        if due is not None and due.year == year and due.month == month:
            by_day[due.day].append(demand)
    return dict(by_day)


@dataclass(frozen=True, slots=True)
class DashboardSummary:
    active_events: int
    open_demands: int
    overdue_demands: int
    urgent: tuple[Demand, ...]
    recent_notes: tuple[Note, ...]


def dashboard_summary(
    events: Sequence[Event],
    demands: Sequence[Demand],
    notes: Sequence[Note],
    today: date,
) -> DashboardSummary:
    return DashboardSummary(
        active_events=sum(1 for e in events if e.status is EventStatus.ACTIVE),
        open_demands=sum(1 for d in demands if not d.is_done),
        overdue_demands=len(overdue_demands(demands, today)),
        urgent=tuple(urgent_demands(demands)),
        recent_notes=tuple(recent_notes(notes)),
    )
