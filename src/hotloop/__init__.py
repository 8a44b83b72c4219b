"""
hotloop — interval task scheduler with hot reload and atomic shared state.

    from hotloop import Scheduler, SharedState, Task
"""

from hotloop.exceptions import CallbackFailure, InvalidIntervalFormat, TaskNotFound
from hotloop.scheduler import Scheduler, Task, TaskLoop, TaskRegistry, parse_interval
from hotloop.state import SharedState

__version__ = "0.1.0"

__all__ = [
    "CallbackFailure",
    "InvalidIntervalFormat",
    "Scheduler",
    "SharedState",
    "Task",
    "TaskLoop",
    "TaskNotFound",
    "TaskRegistry",
    "parse_interval",
]
