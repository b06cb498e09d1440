"""Tests for the SessionManager idle monitor and shutdown."""
from __future__ import annotations

import time

from orchestrator import SessionConfig


def _wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class TestIdleMonitor:
    def test_idle_session_is_stopped(self, manager_factory):
        manager = manager_factory(idle_timeout_seconds=0.05)
        manager.start_session(SessionConfig(session_id="idle"))
        manager.start_monitoring()
        assert _wait_for(lambda: manager.list_sessions() == [])

    def test_heartbeat_keeps_session_alive(self, manager_factory):
        manager = manager_factory(idle_timeout_seconds=0.2)
        manager.start_session(SessionConfig(session_id="busy"))
        manager.start_monitoring()
        for _ in range(30):
            manager.touch_session("busy")
            time.sleep(0.01)
        assert [s["session_id"] for s in manager.list_sessions()] == ["busy"]

    def test_zero_timeout_disables_idle_stop(self, manager_factory):
        manager = manager_factory(idle_timeout_seconds=0)
        manager.start_session(SessionConfig(session_id="keep"))
        manager.start_monitoring()
        time.sleep(0.1)
        assert len(manager.list_sessions()) == 1


class TestMonitorLifecycle:
    def test_start_monitoring_is_idempotent(self, manager_factory):
        manager = manager_factory()
        manager.start_monitoring()
        thread = manager._monitor_thread
        manager.start_monitoring()
        assert manager._monitor_thread is thread

    def test_stop_monitoring_joins_thread(self, manager_factory):
        manager = manager_factory()
        manager.start_monitoring()
        manager.stop_monitoring()
        assert manager._monitor_thread is None

    def test_shutdown_closes_all_sessions(self, manager_factory):
        manager = manager_factory()
        handles = [manager.start_session(SessionConfig(session_id=f"s{i}")) for i in range(3)]
        manager.start_monitoring()
        manager.shutdown()
        assert manager.list_sessions() == []
        assert manager._monitor_thread is None
        for handle in handles:
            assert not handle.worker.busy
