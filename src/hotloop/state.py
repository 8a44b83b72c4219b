"""
state.py — Shared state store

A transactional container for state that many task callbacks mutate
concurrently. The only write path is apply(transform): read, compute,
commit under one lock, so concurrent applies are linearized and no update
is ever lost.

Usage:
    counter = SharedState(0)
    counter.apply(lambda n: n + 1)
    counter.get()        # -> 1
"""

from __future__ import annotations

import threading
from typing import Callable, Generic, TypeVar

from hotloop.observability.logger import get_logger

log = get_logger(__name__)

T = TypeVar("T")


class SharedState(Generic[T]):
    """
    Linearizable read-modify-write container.

    Safe to use from coroutines and from threads. A transform runs while the
    lock is held, so it must not call back into the same store.
    """

    def __init__(self, initial: T, name: str = "state") -> None:
        self._value = initial
        self._version = 0
        self._name = name
        self._lock = threading.Lock()

    def apply(self, transform: Callable[[T], T]) -> T:
        """
        Atomically replace the value with transform(value) and return it.

        If transform raises, nothing is committed and the error propagates.
        """
        with self._lock:
            new_value = transform(self._value)
            self._value = new_value
            self._version += 1
            version = self._version
        log.debug("state.applied", state=self._name, version=version)
        return new_value

    def increment(self, delta: int = 1) -> T:
        return self.apply(lambda current: current + delta)

    def get(self) -> T:
        """Return the last committed value."""
        with self._lock:
            return self._value

    def reset(self, value: T) -> None:
        """Overwrite the value unconditionally (test setup, restarts)."""
        with self._lock:
            self._value = value
            self._version += 1
        log.debug("state.reset", state=self._name)

    @property
    def version(self) -> int:
        """Number of committed writes so far."""
        with self._lock:
            return self._version

    def __repr__(self) -> str:
        return f"<SharedState {self._name}={self.get()!r} version={self.version}>"
