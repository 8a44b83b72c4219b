"""
Test conftest — deterministic time for scheduler loops, and settings
isolated from the developer's environment.

VirtualClock.sleep() is injected into loops instead of asyncio.sleep();
tests move time forward with `await clock.advance(seconds)`, which wakes
sleepers in wake-time order and lets each woken loop run its next cycle
before moving on.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import os

import pytest


class VirtualClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []
        self._sleepers: list[tuple[float, int, asyncio.Future]] = []
        self._seq = itertools.count()

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        fut = asyncio.get_running_loop().create_future()
        heapq.heappush(self._sleepers, (self.now + seconds, next(self._seq), fut))
        await fut

    async def settle(self, rounds: int = 20) -> None:
        """Yield to the event loop until woken loops reach their next sleep."""
        for _ in range(rounds):
            await asyncio.sleep(0)

    async def advance(self, seconds: float, inclusive: bool = True) -> None:
        """
        Move time forward by `seconds`. With inclusive=False the window is
        half-open: sleepers due exactly at the end stay asleep.
        """
        target = self.now + seconds
        await self.settle()
        while self._sleepers and self._due(self._sleepers[0][0], target, inclusive):
            wake_at, _, fut = heapq.heappop(self._sleepers)
            self.now = wake_at
            if not fut.done():
                fut.set_result(None)
            await self.settle()
        self.now = target

    @staticmethod
    def _due(wake_at: float, target: float, inclusive: bool) -> bool:
        return wake_at <= target if inclusive else wake_at < target

    @property
    def pending(self) -> int:
        return sum(1 for _, _, fut in self._sleepers if not fut.done())


@pytest.fixture
def clock() -> VirtualClock:
    return VirtualClock()


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch):
    """Drop HOTLOOP_* env vars and .env loading so Settings() sees defaults."""
    for var in list(os.environ):
        if var.upper().startswith("HOTLOOP_"):
            monkeypatch.delenv(var, raising=False)

    import hotloop.config.settings as settings_module
    from pydantic_settings import SettingsConfigDict
    patched_config = SettingsConfigDict(
        env_prefix="HOTLOOP_",
        env_file=None,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )
    monkeypatch.setattr(settings_module.Settings, "model_config", patched_config)
    monkeypatch.setattr(settings_module, "_singleton", None)
