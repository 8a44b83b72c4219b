"""
observability/events.py — Scheduler notifications

Every registry mutation and loop transition is a discrete SchedulerEvent.
EventLog writes each one as a structlog line (event name = EventKind value)
and keeps a bounded in-memory history that callers and tests can filter by
kind instead of matching message text.

Usage:
    events = EventLog(limit=1000)
    events.emit(EventKind.TASK_REGISTERED, task="Task A")
    events.of_kind(EventKind.TASK_REGISTERED)   # -> [SchedulerEvent(...)]
"""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from hotloop.observability.logger import get_logger

log = get_logger(__name__)


class EventKind(str, Enum):
    # Registry
    TASK_REGISTERED = "task.registered"
    TASK_UPDATED = "task.updated"
    TASK_DEREGISTERED = "task.deregistered"
    TASK_SCHEDULED = "task.scheduled"

    # Loop lifecycle
    LOOP_STARTED = "loop.started"
    LOOP_ALREADY_RUNNING = "loop.already_running"
    LOOP_RUNNING_TASK = "loop.running_task"
    LOOP_CONDITION_FALSE = "loop.condition_false"
    LOOP_CALLBACK_FIRED = "loop.callback_fired"
    LOOP_CALLBACK_FAILED = "loop.callback_failed"
    LOOP_TASK_NOT_FOUND = "loop.task_not_found"
    LOOP_INVALID_INTERVAL = "loop.invalid_interval"
    LOOP_CANCELLED = "loop.cancelled"
    LOOP_STOPPED = "loop.stopped"


# Kinds that describe something going wrong; logged at warning/error.
_WARNING_KINDS = frozenset({
    EventKind.LOOP_ALREADY_RUNNING,
    EventKind.LOOP_TASK_NOT_FOUND,
})
_ERROR_KINDS = frozenset({
    EventKind.LOOP_CALLBACK_FAILED,
    EventKind.LOOP_INVALID_INTERVAL,
})
_DEBUG_KINDS = frozenset({
    EventKind.LOOP_CONDITION_FALSE,
})


@dataclass(frozen=True)
class SchedulerEvent:
    kind: EventKind
    task: Optional[str]
    fields: dict[str, Any] = field(default_factory=dict)
    at: float = field(default_factory=time.time)


class EventLog:
    """
    Thread-safe bounded event history plus structured logging.

    Older events are dropped once `limit` is reached.
    """

    def __init__(self, limit: int = 1000) -> None:
        self._events: deque[SchedulerEvent] = deque(maxlen=max(1, limit))
        self._lock = threading.Lock()

    def emit(
        self,
        kind: EventKind,
        task: Optional[str] = None,
        exc_info: bool = False,
        **fields: Any,
    ) -> SchedulerEvent:
        event = SchedulerEvent(kind=kind, task=task, fields=dict(fields))
        with self._lock:
            self._events.append(event)

        if kind in _ERROR_KINDS:
            log.error(kind.value, task=task, exc_info=exc_info, **fields)
        elif kind in _WARNING_KINDS:
            log.warning(kind.value, task=task, **fields)
        elif kind in _DEBUG_KINDS:
            log.debug(kind.value, task=task, **fields)
        else:
            log.info(kind.value, task=task, **fields)
        return event

    # ── Queries ───────────────────────────────────────────────────────────────

    @property
    def events(self) -> list[SchedulerEvent]:
        with self._lock:
            return list(self._events)

    def of_kind(self, kind: EventKind, task: Optional[str] = None) -> list[SchedulerEvent]:
        return [
            e for e in self.events
            if e.kind == kind and (task is None or e.task == task)
        ]

    def for_task(self, task: str) -> list[SchedulerEvent]:
        return [e for e in self.events if e.task == task]

    def count(self, kind: EventKind, task: Optional[str] = None) -> int:
        return len(self.of_kind(kind, task))

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
