"""
tests/unit/test_shared_state.py — SharedState

Covers:
  - apply / increment / get / reset / version
  - Failing transforms commit nothing
  - No lost updates under thread contention
  - Arbitrary (non-integer) read-modify-write transforms
"""

from __future__ import annotations

import threading
import time

import pytest

from hotloop.state import SharedState


class TestSharedStateBasics:

    def test_initial_value(self):
        s = SharedState(0)
        assert s.get() == 0
        assert s.version == 0

    def test_apply_returns_new_value(self):
        s = SharedState(10)
        assert s.apply(lambda n: n * 2) == 20
        assert s.get() == 20

    def test_increment_helper(self):
        s = SharedState(0)
        s.increment()
        s.increment(5)
        assert s.get() == 6

    def test_version_counts_commits(self):
        s = SharedState(0)
        for _ in range(3):
            s.increment()
        assert s.version == 3

    def test_reset_overwrites(self):
        s = SharedState(41)
        s.reset(0)
        assert s.get() == 0

    def test_failed_transform_commits_nothing(self):
        s = SharedState(7)

        def boom(_):
            raise ValueError("bad transform")

        with pytest.raises(ValueError, match="bad transform"):
            s.apply(boom)
        assert s.get() == 7
        assert s.version == 0

    def test_generalises_to_structured_state(self):
        s = SharedState({"runs": 0, "names": ()})
        s.apply(lambda st: {"runs": st["runs"] + 1, "names": st["names"] + ("a",)})
        s.apply(lambda st: {"runs": st["runs"] + 1, "names": st["names"] + ("b",)})
        assert s.get() == {"runs": 2, "names": ("a", "b")}

    def test_repr(self):
        s = SharedState(3, name="counter")
        assert "counter=3" in repr(s)


class TestSharedStateConcurrency:

    def test_no_lost_updates_across_threads(self):
        s = SharedState(0)
        threads_n, per_thread = 8, 250

        def slow_increment(n: int) -> int:
            # Widen the read→write window; a non-atomic store would drop updates here.
            time.sleep(0)
            return n + 1

        def worker():
            for _ in range(per_thread):
                s.apply(slow_increment)

        threads = [threading.Thread(target=worker) for _ in range(threads_n)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert s.get() == threads_n * per_thread
        assert s.version == threads_n * per_thread

    def test_apply_is_linearized(self):
        """Every transform sees the value committed by exactly one predecessor."""
        s = SharedState(())

        def append_seen(history: tuple) -> tuple:
            return history + (len(history),)

        threads = [
            threading.Thread(target=lambda: [s.apply(append_seen) for _ in range(100)])
            for _ in range(4)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert s.get() == tuple(range(400))
