# ruff: noqa: T201

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING, cast

from dotenv import load_dotenv

from eventdesk.app import build_workspace
from eventdesk.config import ConfigurationError, configure_logging
from eventdesk.domain.assistant import ActionType, execute_action
from eventdesk.domain.errors import NotFoundError, ValidationError
from eventdesk.domain.model import ContactStatus, EntityKind, EventStatus
from eventdesk.domain.views import (
    active_demands,
    active_events,
    calendar_month,
    demands_for_event,
    is_overdue,
    recent_notes,
    sorted_contacts,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import date
    from types import FrameType

    from eventdesk.app import Workspace
    from eventdesk.domain.model import Contact, Demand, Event, Note

log = logging.getLogger(__name__)

_KINDS = {kind.value: kind for kind in EntityKind}


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Events, demands, contacts and notes")
    parser.add_argument(
        "--backend",
        choices=("auto", "supabase", "local"),
        default="auto",
        help="Persistence backend (default: Supabase when configured, else local)",
    )
    parser.add_argument("--database-uri", type=str, help="SQLAlchemy URL for the local backend")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    events = subparsers.add_parser("events", help="List events")
    events.add_argument("--all", action="store_true", help="Include completed events")

    demands = subparsers.add_parser("demands", help="List open demands, overdue first")
    demands.add_argument("--event-id", type=str, help="Only demands of this event")
    demands.add_argument("--all", action="store_true", help="Include done demands")

    subparsers.add_parser("contacts", help="List contacts by name")

    notes = subparsers.add_parser("notes", help="List notes, newest first")
    notes.add_argument("--limit", type=int, default=None, help="Show only the newest N notes")

    calendar = subparsers.add_parser("calendar", help="Demands due in a month")
    calendar.add_argument("--month", type=str, help="Month as YYYY-MM (default: current)")

    subparsers.add_parser("summary", help="Dashboard counters and urgent demands")

    add_event = subparsers.add_parser("add-event", help="Create an event")
    add_event.add_argument("--title", required=True)
    add_event.add_argument("--date", required=True, help="YYYY-MM-DD")
    add_event.add_argument("--location", default="")
    add_event.add_argument("--description", default="")
    add_event.add_argument("--status", choices=[s.value for s in EventStatus], default=None)
    add_event.add_argument("--website-url", default=None)
    add_event.add_argument("--image-url", default=None)

    add_demand = subparsers.add_parser("add-demand", help="Create a demand")
    add_demand.add_argument("--title", required=True)
    add_demand.add_argument("--event-id", default=None, help="Defaults to the only event")
    add_demand.add_argument("--description", default="")
    add_demand.add_argument("--priority", default=None, help="Low, Medium, High or Baixa/Média/Alta")
    add_demand.add_argument("--due", default=None, help="Due date YYYY-MM-DD")

    add_contact = subparsers.add_parser("add-contact", help="Create a contact")
    add_contact.add_argument("--name", required=True)
    add_contact.add_argument("--company", default="")
    add_contact.add_argument("--role", default="")
    add_contact.add_argument("--email", default="")
    add_contact.add_argument("--phone", default="")
    add_contact.add_argument("--status", choices=[s.value for s in ContactStatus], default=None)
    add_contact.add_argument("--notes", default="")

    add_note = subparsers.add_parser("add-note", help="Create a note")
    add_note.add_argument("--content", required=True)
    add_note.add_argument("--due", default=None, help="Due date YYYY-MM-DD")

    complete = subparsers.add_parser("complete", help="Mark an event or demand as done")
    complete.add_argument("kind", choices=("event", "demand"))
    complete.add_argument("id")

    restore = subparsers.add_parser("restore", help="Reopen an event or demand")
    restore.add_argument("kind", choices=("event", "demand"))
    restore.add_argument("id")

    delete = subparsers.add_parser("delete", help="Delete a record")
    delete.add_argument("kind", choices=tuple(_KINDS))
    delete.add_argument("id")

    suggest = subparsers.add_parser("suggest", help="AI demand suggestions for an event")
    suggest.add_argument("event_id")
    suggest.add_argument("--accept", action="store_true", help="Create the suggested demands")

    subparsers.add_parser("briefing", help="AI risk briefing")

    ask = subparsers.add_parser("ask", help="Interpret a chat command")
    ask.add_argument("text", nargs="+")
    ask.add_argument("--event-id", default=None, help="Fallback event for created demands")
    ask.add_argument("--apply", action="store_true", help="Create what the assistant proposes")

    watch = subparsers.add_parser("watch", help="Print realtime changes as they arrive")
    watch.add_argument(
        "--seconds",
        type=float,
        default=None,
        help="Stop after this many seconds (default: until Ctrl+C)",
    )

    return parser.parse_args(list(argv))


def _parse_month(value: str) -> tuple[int, int]:
    try:
        year_text, month_text = value.strip().split("-", 1)
        year, month = int(year_text), int(month_text)
    except ValueError as exc:
        raise ValueError(f"Invalid month: {value} (expected YYYY-MM)") from exc
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month: {value} (expected YYYY-MM)")
    return year, month


# Formatting ------------------------------------------------------------------


def format_event(event: Event) -> str:
    line = f"{event.id}  {event.date}  [{event.status}]  {event.title}"
    if event.location:
        line += f" @ {event.location}"
    return line


def format_demand(demand: Demand, today: date) -> str:
    due = demand.due_date or "-"
    flag = "  OVERDUE" if not demand.is_done and is_overdue(demand.due_date, today) else ""
    return f"{demand.id}  {due:<10}  {demand.priority:<5}  {demand.status:<12}  {demand.title}{flag}"


def format_contact(contact: Contact) -> str:
    parts = [contact.name, contact.company, contact.role, contact.email, contact.phone]
    return f"{contact.id}  [{contact.status}]  " + " | ".join(p for p in parts if p)


def format_note(note: Note) -> str:
    due = f" (due {note.due_date})" if note.due_date else ""
    return f"{note.id}  {note.created_at[:10]}  {note.content}{due}"


# Commands --------------------------------------------------------------------


async def _list(workspace: Workspace, args: argparse.Namespace) -> None:
    store = workspace.store
    today = workspace.clock()
    match args.command:
        case "events":
            events = store.events if args.all else tuple(active_events(store.events))
            for event in events:
                print(format_event(event))
        case "demands":
            demands = list(store.demands)
            if args.event_id:
                demands = demands_for_event(demands, args.event_id)
            shown = demands if args.all else active_demands(demands, today)
            for demand in shown:
                print(format_demand(demand, today))
        case "contacts":
            for contact in sorted_contacts(store.contacts):
                print(format_contact(contact))
        case "notes":
            limit = args.limit if args.limit is not None else len(store.notes)
            for note in recent_notes(store.notes, limit=limit):
                print(format_note(note))
        case "calendar":
            year, month = _parse_month(args.month) if args.month else (today.year, today.month)
            days = calendar_month(store.demands, year, month)
            for day in sorted(days):
                print(f"{year:04d}-{month:02d}-{day:02d}")
                for demand in days[day]:
                    print(f"  {format_demand(demand, today)}")
        case "summary":
            summary = workspace.summary()
            print(f"Active events:   {summary.active_events}")
            print(f"Open demands:    {summary.open_demands}")
            print(f"Overdue demands: {summary.overdue_demands}")
            for demand in summary.urgent:
                print(f"  urgent: {format_demand(demand, today)}")
            for note in summary.recent_notes:
                print(f"  note:   {format_note(note)}")


async def _mutate(workspace: Workspace, args: argparse.Namespace) -> None:
    commands = workspace.commands
    today = workspace.clock()
    match args.command:
        case "add-event":
            event = commands.save_event(
                title=args.title,
                date=args.date,
                location=args.location,
                description=args.description,
                status=args.status,
                website_url=args.website_url,
                image_url=args.image_url,
            )
            print(format_event(event))
        case "add-demand":
            demand = commands.save_demand(
                title=args.title,
                event_id=args.event_id,
                description=args.description,
                priority=args.priority,
                due_date=args.due,
            )
            print(format_demand(demand, today))
        case "add-contact":
            contact = commands.save_contact(
                name=args.name,
                company=args.company,
                role=args.role,
                email=args.email,
                phone=args.phone,
                status=args.status,
                notes=args.notes,
            )
            print(format_contact(contact))
        case "add-note":
            print(format_note(commands.save_note(content=args.content, due_date=args.due)))
        case "complete" | "restore":
            _toggle(workspace, args.command, args.kind, args.id)
        case "delete":
            kind = _KINDS[args.kind]
            removed = workspace.store.apply_local_delete(kind, args.id)
            print(f"Deleted {kind} {args.id}" if removed else f"No {kind} {args.id}; delete sent anyway")


def _toggle(workspace: Workspace, command: str, kind: str, record_id: str) -> None:
    commands = workspace.commands
    if kind == "event":
        result = (
            commands.complete_event(record_id)
            if command == "complete"
            else commands.restore_event(record_id)
        )
    else:
        result = (
            commands.complete_demand(record_id)
            if command == "complete"
            else commands.restore_demand(record_id)
        )
    if result is None:
        raise NotFoundError(_KINDS[kind], record_id)
    status = result.status
    print(f"{kind} {record_id} -> {status}")


async def _assist(workspace: Workspace, args: argparse.Namespace) -> None:
    assistant = workspace.assistant
    store = workspace.store
    if not assistant.enabled:
        log.warning("GEMINI_API_KEY is not set; the assistant answers with defaults")
    match args.command:
        case "suggest":
            event = cast("Event", store.get(EntityKind.EVENT, args.event_id))
            suggestions = await assistant.suggest_demands(event)
            for suggestion in suggestions:
                print(f"[{suggestion.priority}] {suggestion.title}: {suggestion.description}")
            if args.accept and suggestions:
                created = workspace.commands.accept_suggestions(args.event_id, suggestions)
                print(f"Created {len(created)} demand(s)")
        case "briefing":
            briefing = await assistant.analyze_risks(store.events, store.demands)
            print(briefing.summary)
            for alert in briefing.critical_alerts:
                print(f"  ! {alert}")
            if briefing.top_priority_id:
                top = cast("Demand | None", store.find(EntityKind.DEMAND, briefing.top_priority_id))
                if top is not None:
                    print(f"Start with: {top.title}")
        case "ask":
            action = await assistant.interpret_command(" ".join(args.text), store.events)
            print(action.message)
            if action.type is ActionType.UNKNOWN or not args.apply:
                return
            for record in execute_action(action, workspace.commands, event_id=args.event_id):
                print(f"Created {record.kind} {record.id}")


async def _watch(workspace: Workspace, seconds: float | None) -> None:
    def show(kind: EntityKind, record_id: str) -> None:
        if record_id == "*":
            print(f"{kind.table}: reloaded ({len(workspace.store.list(kind))} records)")
            return
        record = workspace.store.find(kind, record_id)
        print(f"{kind.table}: {record_id} {'removed' if record is None else 'changed'}")

    workspace.store.add_listener(show)
    await workspace.start(follow=True)
    if seconds is None:
        await asyncio.Event().wait()
    else:
        await asyncio.sleep(seconds)


async def _run_command(args: argparse.Namespace) -> None:
    workspace = build_workspace(backend=args.backend, database_uri=args.database_uri)
    try:
        if args.command == "watch":
            await _watch(workspace, args.seconds)
            return
        await workspace.start()
        if args.command in {"events", "demands", "contacts", "notes", "calendar", "summary"}:
            await _list(workspace, args)
        elif args.command in {"suggest", "briefing", "ask"}:
            await _assist(workspace, args)
        else:
            await _mutate(workspace, args)
    finally:
        await workspace.stop()
        for notice in workspace.notices.errors():
            print(f"Error: {notice.message}", file=sys.stderr)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        if parsed_args.command == "calendar" and parsed_args.month is not None:
            _parse_month(parsed_args.month)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)

    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.WARNING)

    try:
        asyncio.run(_run_command(parsed_args))
    except ValidationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)
    except (ConfigurationError, NotFoundError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    print("\nClosed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
