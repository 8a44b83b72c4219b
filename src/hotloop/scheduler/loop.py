"""
scheduler/loop.py — Per-task execution loop

A TaskLoop is bound to a task *name*, not a Task value. Every cycle it
re-reads the registry, so a hot-loaded definition takes effect on the
next cycle without restarting the loop:

    lookup ──absent──▶ STOPPED (task not found)
      │
    present
      │
    condition(snapshot)? ──true──▶ on_complete()
      │
    sleep(parse_interval(task.interval)) ──invalid──▶ STOPPED
      │
      └──▶ lookup ...

Removing the registry entry is the only way a loop ends on its own; it
takes effect on the next tick. Stopping is final: a new loop must be
started if the name is registered again.

Failures inside condition/on_complete are wrapped in CallbackFailure.
With isolate_failures=True (default) they are reported and the loop
carries on; with False the loop stops and wait() re-raises the failure.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from hotloop.exceptions import CallbackFailure, InvalidIntervalFormat
from hotloop.observability.events import EventKind, EventLog
from hotloop.observability.logger import bind_task, clear_task
from hotloop.scheduler.interval import parse_interval
from hotloop.scheduler.registry import TaskRegistry
from hotloop.scheduler.task import Task, resolve

SleepFn = Callable[[float], Awaitable[Any]]


class LoopState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    STOPPED = "stopped"


class StopReason(str, Enum):
    TASK_NOT_FOUND = "task_not_found"
    INVALID_INTERVAL = "invalid_interval"
    CALLBACK_FAILURE = "callback_failure"
    CANCELLED = "cancelled"


@dataclass
class LoopStats:
    cycles: int = 0
    fired: int = 0
    failures: int = 0
    last_fired_at: Optional[float] = None
    last_error: Optional[str] = None


class TaskLoop:
    """
    Repeating timer-driven state machine for one task name.

    Lifecycle::

        loop = TaskLoop("Task A", registry, events)
        loop.start()          # schedules an asyncio.Task, returns self
        ...
        await loop.wait()     # until it stops on its own
        loop.cancel()         # or stop it externally (scheduler shutdown)
    """

    def __init__(
        self,
        name: str,
        registry: TaskRegistry,
        events: EventLog,
        *,
        sleep: Optional[SleepFn] = None,
        isolate_failures: bool = True,
    ) -> None:
        self._name = name
        self._registry = registry
        self._events = events
        self._sleep: SleepFn = sleep or asyncio.sleep
        self._isolate_failures = isolate_failures

        self.loop_id = uuid.uuid4().hex[:8]
        self.stats = LoopStats()
        self._state = LoopState.PENDING
        self._stop_reason: Optional[StopReason] = None
        self._error: Optional[CallbackFailure] = None
        self._task: Optional[asyncio.Task] = None

    # ── Introspection ─────────────────────────────────────────────────────────

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def stop_reason(self) -> Optional[StopReason]:
        return self._stop_reason

    @property
    def is_running(self) -> bool:
        return self._state == LoopState.RUNNING

    @property
    def handle(self) -> Optional[asyncio.Task]:
        """The asyncio.Task driving this loop, once started."""
        return self._task

    @property
    def error(self) -> Optional[CallbackFailure]:
        """The failure that stopped the loop when failures are not isolated."""
        return self._error

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def start(self) -> "TaskLoop":
        """Begin cycling in a background asyncio.Task. Must be called once."""
        if self._task is not None:
            raise RuntimeError(f"Loop for '{self._name}' was already started.")
        self._state = LoopState.RUNNING
        self._task = asyncio.create_task(
            self._run(),
            name=f"hotloop:loop:{self._name}:{self.loop_id}",
        )
        self._task.add_done_callback(self._on_done)
        return self

    def _on_done(self, _task: asyncio.Task) -> None:
        # Cancelled before the first cycle ever ran.
        if self._state == LoopState.RUNNING:
            self._events.emit(EventKind.LOOP_CANCELLED, task=self._name, loop_id=self.loop_id)
            self._finish(StopReason.CANCELLED)

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait(self, timeout: Optional[float] = None) -> None:
        """
        Wait until the loop stops. Re-raises the CallbackFailure that
        stopped it, if any. Raises asyncio.TimeoutError on timeout.
        """
        if self._task is None:
            return
        done, _ = await asyncio.wait({self._task}, timeout=timeout)
        if not done:
            raise asyncio.TimeoutError(f"Loop for '{self._name}' still running")
        if self._error is not None:
            raise self._error

    # ── Cycle ─────────────────────────────────────────────────────────────────

    async def _run(self) -> None:
        bind_task(self._name)
        try:
            while True:
                task = self._registry.get(self._name)
                if task is None:
                    self._events.emit(EventKind.LOOP_TASK_NOT_FOUND, task=self._name)
                    self._finish(StopReason.TASK_NOT_FOUND)
                    return

                self.stats.cycles += 1
                self._events.emit(
                    EventKind.LOOP_RUNNING_TASK,
                    task=self._name,
                    cycle=self.stats.cycles,
                    loop_id=self.loop_id,
                )

                await self._execute(task)

                try:
                    delay_ms = parse_interval(task.interval)
                except InvalidIntervalFormat as e:
                    self._events.emit(
                        EventKind.LOOP_INVALID_INTERVAL,
                        task=self._name,
                        interval=task.interval,
                        error=str(e),
                    )
                    self._finish(StopReason.INVALID_INTERVAL)
                    return

                await self._sleep(delay_ms / 1000)

        except CallbackFailure as failure:
            self._error = failure
            self._finish(StopReason.CALLBACK_FAILURE)
        except asyncio.CancelledError:
            self._events.emit(EventKind.LOOP_CANCELLED, task=self._name, loop_id=self.loop_id)
            self._finish(StopReason.CANCELLED)
            raise
        finally:
            clear_task()

    async def _execute(self, task: Task) -> None:
        """Evaluate the guard and fire the callback for one cycle."""
        if task.condition is None:
            # No guard means the callback never fires, even if one is set.
            return

        try:
            passed = await resolve(task.condition(self._registry.snapshot()))
        except Exception as e:
            self._fail("condition", e)
            return

        if not passed:
            self._events.emit(EventKind.LOOP_CONDITION_FALSE, task=self._name)
            return
        if task.on_complete is None:
            return

        try:
            await resolve(task.on_complete())
        except Exception as e:
            self._fail("on_complete", e)
            return

        self.stats.fired += 1
        self.stats.last_fired_at = time.time()
        self._events.emit(EventKind.LOOP_CALLBACK_FIRED, task=self._name, fired=self.stats.fired)

    def _fail(self, stage: str, error: Exception) -> None:
        failure = CallbackFailure(self._name, stage, error)
        failure.__cause__ = error
        self.stats.failures += 1
        self.stats.last_error = str(failure)
        self._events.emit(
            EventKind.LOOP_CALLBACK_FAILED,
            task=self._name,
            exc_info=True,
            stage=stage,
            error=f"{type(error).__name__}: {error}",
            isolated=self._isolate_failures,
        )
        if not self._isolate_failures:
            raise failure

    def _finish(self, reason: StopReason) -> None:
        self._state = LoopState.STOPPED
        self._stop_reason = reason
        self._events.emit(
            EventKind.LOOP_STOPPED,
            task=self._name,
            reason=reason.value,
            cycles=self.stats.cycles,
            loop_id=self.loop_id,
        )

    def __repr__(self) -> str:
        return f"<TaskLoop name={self._name!r} state={self._state.value} cycles={self.stats.cycles}>"
