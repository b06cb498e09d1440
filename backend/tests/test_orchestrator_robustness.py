"""Tests for SessionManager robustness under concurrent use."""
from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from orchestrator import SessionConfig
from orchestrator.exceptions import (
    ResourceLimitExceededError,
    SessionAlreadyRunningError,
)
from tests.fakes import bright_square


def _cfg(session_id: str) -> SessionConfig:
    return SessionConfig(session_id=session_id)


# ---------- Concurrency ----------

class TestConcurrentAccess:
    def test_concurrent_starts_all_succeed(self, manager_factory):
        manager = manager_factory(max_sessions=8)
        ids = [f"c-{i}" for i in range(6)]

        with ThreadPoolExecutor(max_workers=6) as pool:
            results = list(pool.map(lambda sid: manager.start_session(_cfg(sid)), ids))

        assert len(results) == 6
        listed_ids = {s["session_id"] for s in manager.list_sessions()}
        assert set(ids) == listed_ids

    def test_concurrent_starts_exceed_max(self, manager_factory):
        manager = manager_factory(max_sessions=3)
        ids = [f"c-{i}" for i in range(8)]
        results = {"ok": 0, "limit": 0}
        lock = threading.Lock()

        def _try_start(sid):
            try:
                manager.start_session(_cfg(sid))
                key = "ok"
            except ResourceLimitExceededError:
                key = "limit"
            with lock:
                results[key] += 1

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(_try_start, ids))

        assert results["ok"] == 3
        assert results["limit"] == 5

    def test_concurrent_duplicate_start_only_one_wins(self, manager_factory):
        manager = manager_factory()
        errors = []

        def _try_start(_):
            try:
                manager.start_session(_cfg("dup"))
            except SessionAlreadyRunningError as exc:
                errors.append(exc)

        with ThreadPoolExecutor(max_workers=4) as pool:
            list(pool.map(_try_start, range(4)))

        assert len(errors) == 3
        assert len(manager.list_sessions()) == 1

    def test_interleaved_start_stop_no_corruption(self, manager_factory):
        manager = manager_factory(max_sessions=20)

        def _start_stop(idx):
            sid = f"is-{idx}"
            manager.start_session(_cfg(sid))
            time.sleep(0.001)
            manager.stop_session(sid)

        with ThreadPoolExecutor(max_workers=10) as pool:
            list(pool.map(_start_stop, range(10)))

        assert manager.list_sessions() == []


# ---------- Frame flow ----------

class TestFrameFlow:
    def test_burst_submissions_are_counted(self, manager_factory):
        manager = manager_factory()
        handle = manager.start_session(_cfg("burst"))
        frame = bright_square()

        futures = [handle.worker.submit(frame) for _ in range(20)]
        for future in futures:
            if future is not None:
                future.result(timeout=5)

        accepted = sum(1 for f in futures if f is not None)
        assert accepted >= 1
        assert handle.worker.processed_count == accepted
        assert handle.worker.dropped_count == 20 - accepted
        assert handle.pipeline.trace_length() == accepted

    def test_touch_from_many_threads(self, manager_factory):
        manager = manager_factory()
        handle = manager.start_session(_cfg("hb"))
        before = handle.last_heartbeat

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda _: manager.touch_session("hb"), range(100)))

        assert handle.last_heartbeat >= before

    def test_stop_while_frame_in_flight(self, manager_factory):
        manager = manager_factory()
        handle = manager.start_session(_cfg("inflight"))
        future = handle.worker.submit(bright_square())
        manager.stop_session("inflight")
        assert future.done()
        assert not handle.worker.busy

    def test_shutdown_twice_is_safe(self, manager_factory):
        manager = manager_factory()
        manager.start_session(_cfg("s"))
        manager.shutdown()
        manager.shutdown()
        assert manager.list_sessions() == []


@pytest.mark.parametrize("count", [1, 4])
def test_stop_all_sessions_in_parallel(manager_factory, count):
    manager = manager_factory()
    ids = [f"p-{i}" for i in range(count)]
    for sid in ids:
        manager.start_session(_cfg(sid))

    with ThreadPoolExecutor(max_workers=count) as pool:
        list(pool.map(manager.stop_session, ids))

    assert manager.list_sessions() == []
