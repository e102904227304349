"""AI helpers: demand suggestions, risk briefing and a chat command interpreter.

The text service is optional. When it is missing, fails, or answers with
something that does not match the requested shape, every helper returns a
neutral result instead of raising.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import UTC, date, datetime
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Final

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from eventdesk.domain.errors import AIServiceError
from eventdesk.domain.model import EventStatus, Priority
from eventdesk.domain.views import active_demands, is_overdue

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from eventdesk.domain.commands import DashboardCommands
    from eventdesk.domain.model import Demand, Event, Record
    from eventdesk.domain.ports import TextGenerator

log = getLogger(__name__)

NO_SERVICE_SUMMARY: Final[str] = "AI assistant is not configured."
FAILED_SUMMARY: Final[str] = "Analysis unavailable right now."


# Results -------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DemandSuggestion:
    title: str
    priority: Priority
    description: str = ""


@dataclass(frozen=True, slots=True)
class RiskBriefing:
    summary: str
    critical_alerts: tuple[str, ...] = ()
    top_priority_id: str | None = None


class ActionType(StrEnum):
    CREATE_DEMAND = "CREATE_DEMAND"
    CREATE_EVENT = "CREATE_EVENT"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True, slots=True)
class EventDraft:
    title: str
    date: str
    location: str = ""
    description: str = ""


@dataclass(frozen=True, slots=True)
class DemandDraft:
    title: str
    description: str = ""
    priority: Priority = Priority.MEDIUM
    due_date: str | None = None
    event_id: str | None = None


@dataclass(frozen=True, slots=True)
class AssistantAction:
    type: ActionType
    message: str
    event: EventDraft | None = None
    demands: tuple[DemandDraft, ...] = ()


def unknown_action(message: str = "Sorry, I could not understand that request.") -> AssistantAction:
    return AssistantAction(type=ActionType.UNKNOWN, message=message)


# Response payloads -----------------------------------------------------------


def _coerce_priority(value: object) -> Priority:
    if isinstance(value, str):
        text = value.strip()
        for member in Priority:
            if text in (member.value, member.name) or text.casefold() == member.name.casefold():
                return member
    return Priority.MEDIUM


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class SuggestionPayload(_Payload):
    title: str
    priority: Priority = Priority.MEDIUM
    description: str = ""

    _normalize_priority = field_validator("priority", mode="before")(_coerce_priority)


class BriefingPayload(_Payload):
    summary: str
    critical_alerts: list[str] = Field(default_factory=list, alias="criticalAlerts")
    top_priority_id: str | None = Field(default=None, alias="topPriorityId")


class EventDraftPayload(_Payload):
    title: str
    date: str
    location: str = ""
    description: str = ""


class DemandDraftPayload(_Payload):
    title: str
    description: str = ""
    priority: Priority = Priority.MEDIUM
    due_date: str | None = Field(default=None, alias="dueDate")
    event_id: str | None = Field(default=None, alias="eventId")

    _normalize_priority = field_validator("priority", mode="before")(_coerce_priority)


class ActionPayload(_Payload):
    type: ActionType = ActionType.UNKNOWN
    message: str = ""
    event: EventDraftPayload | None = None
    demands: list[DemandDraftPayload] = Field(default_factory=list)

    @field_validator("type", mode="before")
    @classmethod
    def _unknown_type(cls, value: object) -> object:
        if isinstance(value, str) and value.strip().upper() in ActionType.__members__:
            return value.strip().upper()
        return ActionType.UNKNOWN


_SUGGESTIONS = TypeAdapter(list[SuggestionPayload])

SUGGESTION_SCHEMA: Final[Mapping[str, object]] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "title": {"type": "STRING", "description": "Short demand title"},
            "description": {"type": "STRING", "description": "What has to be done"},
            "priority": {"type": "STRING", "enum": [p.value for p in Priority]},
        },
        "required": ["title", "priority", "description"],
    },
}

BRIEFING_SCHEMA: Final[Mapping[str, object]] = {
    "type": "OBJECT",
    "properties": {
        "summary": {"type": "STRING"},
        "criticalAlerts": {"type": "ARRAY", "items": {"type": "STRING"}},
        "topPriorityId": {"type": "STRING"},
    },
    "required": ["summary", "criticalAlerts"],
}

ACTION_SCHEMA: Final[Mapping[str, object]] = {
    "type": "OBJECT",
    "properties": {
        "type": {"type": "STRING", "enum": [a.value for a in ActionType]},
        "message": {"type": "STRING"},
        "event": {
            "type": "OBJECT",
            "properties": {
                "title": {"type": "STRING"},
                "date": {"type": "STRING", "description": "YYYY-MM-DD"},
                "location": {"type": "STRING"},
                "description": {"type": "STRING"},
            },
        },
        "demands": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "title": {"type": "STRING"},
                    "description": {"type": "STRING"},
                    "priority": {"type": "STRING", "enum": [p.value for p in Priority]},
                    "dueDate": {"type": "STRING", "description": "YYYY-MM-DD"},
                    "eventId": {"type": "STRING"},
                },
                "required": ["title"],
            },
        },
    },
    "required": ["type", "message"],
}


def clean_json_text(text: str) -> str:
    """Strip markdown code fences some models wrap around JSON."""

    return text.replace("```json", "").replace("```", "").strip()


# Assistant -------------------------------------------------------------------


def _today() -> date:
    return datetime.now(UTC).date()


class Assistant:
    def __init__(
        self,
        generator: TextGenerator | None,
        *,
        clock: Callable[[], date] = _today,
    ) -> None:
        self.generator = generator
        self.clock = clock

    @property
    def enabled(self) -> bool:
        return self.generator is not None

    async def suggest_demands(self, event: Event) -> list[DemandSuggestion]:
        """Ask for 5 to 7 operational demands for ``event``; ``[]`` on any failure."""

        prompt = (
            "List 5 to 7 essential operational tasks for the event below.\n"
            f"Title: {event.title}\n"
            f"Description: {event.description}\n"
            f"Location: {event.location}\n"
            f"Date: {event.date}\n"
            "Focus on practical work (logistics, marketing, catering, equipment). "
            f"Use priority {Priority.LOW.value}, {Priority.MEDIUM.value} or "
            f"{Priority.HIGH.value} according to typical urgency."
        )
        text = await self._generate(prompt, SUGGESTION_SCHEMA)
        if text is None:
            return []
        try:
            payloads = _SUGGESTIONS.validate_json(clean_json_text(text))
        except PydanticValidationError:
            log.warning("Discarding malformed demand suggestions: %.200s", text)
            return []
        return [
            DemandSuggestion(title=p.title.strip(), priority=p.priority, description=p.description)
            for p in payloads
            if p.title.strip()
        ]

    async def analyze_risks(
        self,
        events: Sequence[Event],
        demands: Sequence[Demand],
    ) -> RiskBriefing:
        """Short briefing with up to three critical alerts."""

        if self.generator is None:
            return RiskBriefing(summary=NO_SERVICE_SUMMARY)

        today = self.clock()
        open_demands = active_demands(demands, today)
        context = {
            "today": today.isoformat(),
            "activeEvents": [e.title for e in events if e.status is EventStatus.ACTIVE],
            "openDemands": [
                {
                    "id": d.id,
                    "title": d.title,
                    "priority": d.priority.value,
                    "dueDate": d.due_date,
                    "overdue": is_overdue(d.due_date, today),
                }
                for d in open_demands[:20]
            ],
        }
        prompt = (
            "You are the assistant of an event operations dashboard.\n"
            f"Current data: {json.dumps(context, ensure_ascii=False)}\n"
            "Write a short, friendly briefing greeting as summary, list at most 3 "
            "critical alerts, and give the id of the demand to tackle first."
        )
        text = await self._generate(prompt, BRIEFING_SCHEMA)
        if text is None:
            return RiskBriefing(summary=FAILED_SUMMARY)
        try:
            payload = BriefingPayload.model_validate_json(clean_json_text(text))
        except PydanticValidationError:
            log.warning("Discarding malformed briefing: %.200s", text)
            return RiskBriefing(summary=FAILED_SUMMARY)

        known_ids = {d.id for d in open_demands}
        top = payload.top_priority_id if payload.top_priority_id in known_ids else None
        return RiskBriefing(
            summary=payload.summary,
            critical_alerts=tuple(a for a in payload.critical_alerts if a.strip())[:3],
            top_priority_id=top,
        )

    async def interpret_command(self, text: str, events: Sequence[Event]) -> AssistantAction:
        """Turn a chat message into a create-event or create-demands action."""

        if not text.strip():
            return unknown_action("Say what you want to create.")
        if self.generator is None:
            return unknown_action(NO_SERVICE_SUMMARY)

        catalog = [{"id": e.id, "title": e.title, "date": e.date} for e in events if e.is_open]
        prompt = (
            "Interpret the user's message for an event operations dashboard.\n"
            f"Today is {self.clock().isoformat()}.\n"
            f"Known events: {json.dumps(catalog, ensure_ascii=False)}\n"
            "If the user wants a new event, answer type CREATE_EVENT with the event. "
            "If the user wants tasks, answer type CREATE_DEMAND with the demands and "
            "the eventId of the matching known event. Otherwise answer UNKNOWN. "
            "Always include a short message for the user.\n"
            f"Message: {text.strip()}"
        )
        raw = await self._generate(prompt, ACTION_SCHEMA)
        if raw is None:
            return unknown_action()
        try:
            payload = ActionPayload.model_validate_json(clean_json_text(raw))
        except PydanticValidationError:
            log.warning("Discarding malformed action: %.200s", raw)
            return unknown_action()
        return _to_action(payload, known_event_ids={e["id"] for e in catalog})

    async def _generate(self, prompt: str, schema: Mapping[str, object]) -> str | None:
        if self.generator is None:
            log.info("AI assistant disabled; skipping request")
            return None
        try:
            return await self.generator.generate_json(prompt, schema)
        except AIServiceError as exc:
            log.warning("AI request failed: %s", exc)
            return None


def _to_action(payload: ActionPayload, *, known_event_ids: set[str]) -> AssistantAction:
    message = payload.message.strip()
    if payload.type is ActionType.CREATE_EVENT:
        if payload.event is None or not payload.event.title.strip():
            return unknown_action(message or "No event details found.")
        draft = EventDraft(
            title=payload.event.title.strip(),
            date=payload.event.date.strip(),
            location=payload.event.location.strip(),
            description=payload.event.description.strip(),
        )
        return AssistantAction(type=ActionType.CREATE_EVENT, message=message, event=draft)
    if payload.type is ActionType.CREATE_DEMAND:
        drafts = tuple(
            DemandDraft(
                title=d.title.strip(),
                description=d.description.strip(),
                priority=d.priority,
                due_date=d.due_date or None,
                event_id=d.event_id if d.event_id in known_event_ids else None,
            )
            for d in payload.demands
            if d.title.strip()
        )
        if not drafts:
            return unknown_action(message or "No tasks found.")
        return AssistantAction(type=ActionType.CREATE_DEMAND, message=message, demands=drafts)
    return unknown_action(message or "Sorry, I could not understand that request.")


def execute_action(
    action: AssistantAction,
    commands: DashboardCommands,
    *,
    event_id: str | None = None,
) -> list[Record]:
    """Apply an interpreted action through the command boundary.

    ``event_id`` is the fallback event for demands the model did not attach
    to a known event. Validation errors propagate to the caller, and an
    action with any invalid demand creates nothing.
    """

    match action.type:
        case ActionType.CREATE_EVENT if action.event is not None:
            draft = action.event
            return [
                commands.save_event(
                    title=draft.title,
                    date=draft.date,
                    location=draft.location,
                    description=draft.description,
                )
            ]
        case ActionType.CREATE_DEMAND:
            demands = [
                commands.build_demand(
                    title=draft.title,
                    event_id=draft.event_id or event_id,
                    description=draft.description,
                    priority=draft.priority,
                    due_date=draft.due_date,
                )
                for draft in action.demands
            ]
            return list(commands.add_demands(demands))
        case _:
            return []
