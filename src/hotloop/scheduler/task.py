"""
scheduler/task.py — Task definition

A Task is an immutable record: name, interval text, an optional guard
predicate and an optional completion callback. "Updating" a task means
putting a new Task in the registry under the same name, never mutating
an existing one.
"""

from __future__ import annotations

import dataclasses
import inspect
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Awaitable, Mapping, Optional, Protocol, Union, runtime_checkable


@runtime_checkable
class Predicate(Protocol):
    """Guard evaluated each cycle against a read-only registry snapshot."""

    def __call__(self, snapshot: Mapping[str, "Task"]) -> Union[bool, Awaitable[bool]]:
        ...


@runtime_checkable
class Callback(Protocol):
    """Side effect run when the guard passes. May be sync or async."""

    def __call__(self) -> Union[None, Awaitable[None]]:
        ...


@dataclass(frozen=True)
class Task:
    """
    One schedulable unit of work.

    name          Registry key; at most one live Task per name.
    interval      Repeat period text, e.g. '30s', '5m', '2h'. Parsed by the loop.
    condition     Optional Predicate. Without one, on_complete never fires.
    on_complete   Optional Callback invoked when condition returns true.
    metadata      Free-form caller data, not interpreted by the scheduler.
                  Stored as a read-only copy.
    """
    name: str
    interval: str
    condition: Optional[Predicate] = None
    on_complete: Optional[Callback] = None
    metadata: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def replace(self, **changes: Any) -> "Task":
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(self, **changes)

    @property
    def has_condition(self) -> bool:
        return self.condition is not None

    @property
    def has_callback(self) -> bool:
        return self.on_complete is not None


async def resolve(result: Any) -> Any:
    """Await `result` if a sync-or-async capability returned an awaitable."""
    if inspect.isawaitable(result):
        return await result
    return result
