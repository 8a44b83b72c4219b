"""
scheduler/registry.py — Task Registry

Maps task names to their current Task definition. Read by every running
loop on every cycle, written by register/update/deregister at any time.

Copy-on-write: writers build a new dict under a lock and publish it by
swapping one reference. A published dict is never mutated again, so
readers need no lock, never see a half-written entry, and a snapshot is
always a state that existed at one instant.

Usage:
    registry = TaskRegistry()
    registry.register(Task(name="Task A", interval="5m"))

    task = registry.get("Task A")        # Task or None
    view = registry.snapshot()           # read-only Mapping
    registry.deregister("Task A")        # idempotent
"""

from __future__ import annotations

import threading
from types import MappingProxyType
from typing import Iterator, Mapping, Optional

from hotloop.observability.events import EventKind, EventLog
from hotloop.scheduler.task import Task


class TaskRegistry:
    """
    Concurrent name → Task store. Safe for any number of concurrent
    readers and writers across coroutines and threads.
    """

    def __init__(self, events: Optional[EventLog] = None) -> None:
        self._entries: dict[str, Task] = {}
        self._write_lock = threading.Lock()
        self._events = events if events is not None else EventLog()

    # ── Write ─────────────────────────────────────────────────────────────────

    def register(self, task: Task) -> None:
        """Insert `task` under task.name, overwriting any existing entry."""
        self._put(task.name, task)
        self._events.emit(EventKind.TASK_REGISTERED, task=task.name, interval=task.interval)

    def update(self, name: str, task: Task) -> None:
        """Same effect as register(), keyed on `name`; only the event differs."""
        self._put(name, task)
        self._events.emit(EventKind.TASK_UPDATED, task=name, interval=task.interval)

    def deregister(self, name: str) -> None:
        """Remove `name` if present. Removing an absent name is a no-op."""
        with self._write_lock:
            existed = name in self._entries
            if existed:
                entries = dict(self._entries)
                del entries[name]
                self._entries = entries
        self._events.emit(EventKind.TASK_DEREGISTERED, task=name, existed=existed)

    def _put(self, name: str, task: Task) -> None:
        with self._write_lock:
            entries = dict(self._entries)
            entries[name] = task
            self._entries = entries

    # ── Read ──────────────────────────────────────────────────────────────────

    def get(self, name: str) -> Optional[Task]:
        """Return the current Task for `name`, or None if absent."""
        return self._entries.get(name)

    def snapshot(self) -> Mapping[str, Task]:
        """Return a read-only, point-in-time view of the whole registry."""
        return MappingProxyType(self._entries)

    def names(self) -> list[str]:
        return sorted(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __repr__(self) -> str:
        return f"<TaskRegistry tasks={self.names()}>"
