"""
scheduler/scheduler.py — Scheduler façade

Public entry point that composes the registry, the per-task loops and the
event log. Everything is owned by the Scheduler instance (no module-level
state), so several independent schedulers can run side by side.

Usage::

    counter = SharedState(0)
    scheduler = Scheduler()

    scheduler.hot_load(Task(
        name="Task A",
        interval="2s",
        condition=lambda snapshot: True,
        on_complete=lambda: counter.increment(),
    ))
    scheduler.start_loop("Task A")

    # later, while the loop keeps running:
    scheduler.hot_load(Task(name="Task A", interval="5s", ...))   # next cycle
    scheduler.deregister("Task A")                                # loop stops next tick

    await scheduler.stop()    # cancel whatever is still running
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Mapping, Optional

from hotloop.observability.events import EventKind, EventLog
from hotloop.observability.logger import get_logger
from hotloop.scheduler.loop import SleepFn, TaskLoop
from hotloop.scheduler.registry import TaskRegistry
from hotloop.scheduler.task import Task

log = get_logger(__name__)


class Scheduler:
    """
    Hot-reloadable interval scheduler.

    Registry operations (register, deregister, update, schedule, hot_load)
    are total: they never raise. start_loop() does not check the registry;
    a loop for an unknown name stops on its first cycle.

    Duplicate loops: with allow_duplicate_loops=False (default) a second
    start_loop() for a name whose loop is still running returns the running
    loop. With True, a second independent loop is started and the task's
    callback fires once per loop per tick.

    A loop that stops leaves the live set. The newest `stopped_loop_history`
    stopped loops stay visible through loops() and list_tasks().
    """

    def __init__(
        self,
        registry: Optional[TaskRegistry] = None,
        events: Optional[EventLog] = None,
        *,
        sleep: Optional[SleepFn] = None,
        isolate_failures: bool = True,
        allow_duplicate_loops: bool = False,
        stop_timeout_seconds: float = 5.0,
        stopped_loop_history: int = 100,
    ) -> None:
        self.events = events if events is not None else EventLog()
        self.registry = registry if registry is not None else TaskRegistry(self.events)
        self._sleep = sleep
        self._isolate_failures = isolate_failures
        self._allow_duplicate_loops = allow_duplicate_loops
        self._stop_timeout_seconds = stop_timeout_seconds
        self._loops: list[TaskLoop] = []
        self._stopped: deque[TaskLoop] = deque(maxlen=stopped_loop_history)

    # ── Factory ───────────────────────────────────────────────────────────────

    @classmethod
    def from_settings(cls, settings, sleep: Optional[SleepFn] = None) -> "Scheduler":
        cfg = settings.scheduler
        return cls(
            events=EventLog(limit=cfg.event_history_limit),
            sleep=sleep,
            isolate_failures=cfg.isolate_failures,
            allow_duplicate_loops=cfg.allow_duplicate_loops,
            stop_timeout_seconds=cfg.stop_timeout_seconds,
            stopped_loop_history=cfg.stopped_loop_history,
        )

    # ── Registry ──────────────────────────────────────────────────────────────

    def register(self, task: Task) -> None:
        self.registry.register(task)

    def deregister(self, name: str) -> None:
        self.registry.deregister(name)

    def update(self, name: str, task: Task) -> None:
        self.registry.update(name, task)

    def get(self, name: str) -> Optional[Task]:
        return self.registry.get(name)

    def snapshot(self) -> Mapping[str, Task]:
        return self.registry.snapshot()

    def schedule(self, task: Task) -> None:
        """Register `task`, or replace the existing definition with the same name."""
        if self.registry.get(task.name) is not None:
            self.registry.update(task.name, task)
        else:
            self.registry.register(task)
        self.events.emit(EventKind.TASK_SCHEDULED, task=task.name)

    def hot_load(self, task: Task) -> None:
        """Introduce or replace a task while the system is live."""
        self.schedule(task)

    # ── Loops ─────────────────────────────────────────────────────────────────

    def start_loop(self, name: str) -> TaskLoop:
        """Start a loop bound to `name`. Must be called inside a running event loop."""
        if not self._allow_duplicate_loops:
            running = next((lp for lp in self._loops if lp.name == name and lp.is_running), None)
            if running is not None:
                self.events.emit(EventKind.LOOP_ALREADY_RUNNING, task=name, loop_id=running.loop_id)
                return running

        loop = TaskLoop(
            name,
            self.registry,
            self.events,
            sleep=self._sleep,
            isolate_failures=self._isolate_failures,
        )
        self._loops.append(loop)
        loop.start()
        loop.handle.add_done_callback(lambda _t, lp=loop: self._release(lp))
        self.events.emit(EventKind.LOOP_STARTED, task=name, loop_id=loop.loop_id)
        return loop

    def _release(self, loop: TaskLoop) -> None:
        # Stopped loops leave the live list; only the newest few are remembered.
        if loop in self._loops:
            self._loops.remove(loop)
            self._stopped.append(loop)

    def loops(self, name: Optional[str] = None) -> list[TaskLoop]:
        """
        Recently stopped loops followed by live ones, optionally filtered by
        task name. At most `stopped_loop_history` stopped loops are kept.
        """
        return [lp for lp in (*self._stopped, *self._loops) if name is None or lp.name == name]

    def running_loops(self) -> list[TaskLoop]:
        return [lp for lp in self._loops if lp.is_running]

    def _latest_loop(self, name: str) -> Optional[TaskLoop]:
        for lp in (*reversed(self._loops), *reversed(self._stopped)):
            if lp.name == name:
                return lp
        return None

    async def stop(self) -> None:
        """Cancel every running loop and wait for them to finish."""
        running = self.running_loops()
        if not running:
            return
        log.info("scheduler.stopping", loops=len(running))
        for loop in running:
            loop.cancel()
        done, pending = await asyncio.wait(
            {loop.handle for loop in running if loop.handle is not None},
            timeout=self._stop_timeout_seconds,
        )
        if pending:
            log.warning("scheduler.stop_timeout", pending=len(pending))
        log.info("scheduler.stopped", stopped=len(done))

    async def __aenter__(self) -> "Scheduler":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    # ── Introspection ─────────────────────────────────────────────────────────

    def list_tasks(self) -> list[dict]:
        """Status summary of every registered task and its newest loop."""
        result = []
        for name, task in sorted(self.registry.snapshot().items()):
            loop = self._latest_loop(name)
            result.append({
                "name": name,
                "interval": task.interval,
                "has_condition": task.has_condition,
                "has_callback": task.has_callback,
                "loop_state": loop.state.value if loop else None,
                "cycles": loop.stats.cycles if loop else 0,
                "fired": loop.stats.fired if loop else 0,
                "failures": loop.stats.failures if loop else 0,
                "last_error": loop.stats.last_error if loop else None,
            })
        return result

    def __repr__(self) -> str:
        return (
            f"<Scheduler tasks={self.registry.names()} "
            f"running_loops={len(self.running_loops())}>"
        )
