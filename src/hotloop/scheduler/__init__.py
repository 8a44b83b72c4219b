"""
scheduler/ — Hot-reloadable interval scheduler

    from hotloop.scheduler import Scheduler, Task
"""

from hotloop.scheduler.interval import interval_seconds, parse_interval
from hotloop.scheduler.loop import LoopState, LoopStats, StopReason, TaskLoop
from hotloop.scheduler.registry import TaskRegistry
from hotloop.scheduler.scheduler import Scheduler
from hotloop.scheduler.task import Callback, Predicate, Task

__all__ = [
    "Callback",
    "LoopState",
    "LoopStats",
    "Predicate",
    "Scheduler",
    "StopReason",
    "Task",
    "TaskLoop",
    "TaskRegistry",
    "interval_seconds",
    "parse_interval",
]
