"""User-facing notices (the dashboard's toast messages)."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import Protocol, runtime_checkable

from eventdesk.domain.model import utcnow_iso

log = getLogger(__name__)


class NoticeLevel(StrEnum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Notice:
    level: NoticeLevel
    message: str
    created_at: str = field(default_factory=utcnow_iso)


@runtime_checkable
class Notifier(Protocol):
    def notify(self, level: NoticeLevel, message: str) -> None: ...


class NoticeBoard:
    """Bounded in-memory list of notices for the presentation layer to show."""

    def __init__(self, *, capacity: int = 50) -> None:
        self._notices: deque[Notice] = deque(maxlen=capacity)

    def notify(self, level: NoticeLevel, message: str) -> None:
        if level is NoticeLevel.ERROR:
            log.warning("Notice: %s", message)
        else:
            log.debug("Notice (%s): %s", level, message)
        self._notices.append(Notice(level=level, message=message))

    def snapshot(self) -> tuple[Notice, ...]:
        return tuple(self._notices)

    def errors(self) -> tuple[Notice, ...]:
        return tuple(n for n in self._notices if n.level is NoticeLevel.ERROR)

    def clear(self) -> None:
        self._notices.clear()

    def __len__(self) -> int:
        return len(self._notices)
