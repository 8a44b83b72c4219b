"""
exceptions.py — hotloop Unified Error Hierarchy

All hotloop-specific exceptions live here. Import from here, not from
individual modules:
    from hotloop.exceptions import InvalidIntervalFormat, CallbackFailure

Hierarchy:
    HotloopError
    ├── IntervalError
    │   └── InvalidIntervalFormat
    ├── TaskError
    │   ├── TaskNotFound
    │   └── CallbackFailure
    └── ConfigError
"""

from __future__ import annotations

from typing import Any


# ─────────────────────────────────────────────────────────────────────────────
# Root
# ─────────────────────────────────────────────────────────────────────────────

class HotloopError(Exception):
    """Base class for all hotloop exceptions."""


# ─────────────────────────────────────────────────────────────────────────────
# Interval parsing
# ─────────────────────────────────────────────────────────────────────────────

class IntervalError(HotloopError):
    """Base for interval-related errors."""


class InvalidIntervalFormat(IntervalError):
    """Interval text does not match '<positive integer><s|m|h>'."""

    def __init__(self, text: Any, message: str = "") -> None:
        self.text = text
        super().__init__(
            message or f"Invalid interval {text!r}: expected '<digits><s|m|h>', e.g. '30s', '5m', '2h'."
        )


# ─────────────────────────────────────────────────────────────────────────────
# Task layer
# ─────────────────────────────────────────────────────────────────────────────

class TaskError(HotloopError):
    """Base for task execution errors."""


class TaskNotFound(TaskError):
    """
    No registry entry exists for a task name.

    The loop treats a missing task as normal termination and only reports it;
    this type exists so callers can raise it from their own lookups.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Task '{name}' is not registered.")


class CallbackFailure(TaskError):
    """A task's condition or on_complete raised. Original error is __cause__."""

    def __init__(self, task: str, stage: str, error: BaseException) -> None:
        self.task = task
        self.stage = stage
        self.error = error
        super().__init__(
            f"Task '{task}' {stage} failed: {type(error).__name__}: {error}"
        )


# ─────────────────────────────────────────────────────────────────────────────
# Config
# ─────────────────────────────────────────────────────────────────────────────

class ConfigError(HotloopError):
    """Raised by Settings.validate_all() when configuration problems are found."""


__all__ = [
    "HotloopError",
    "IntervalError",
    "InvalidIntervalFormat",
    "TaskError",
    "TaskNotFound",
    "CallbackFailure",
    "ConfigError",
]
