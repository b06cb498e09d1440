"""Session manager for multi-camera lifecycle management."""
from __future__ import annotations

import logging
import threading
import time

from common.settings import SettingsStore, settings_store
from cv.model import InferenceModel
from cv.pipeline import FramePipeline, PipelineContext
from cv.worker import DebugCaptureLoop, FrameWorker
from orchestrator.exceptions import (
    ResourceLimitExceededError,
    SessionAlreadyRunningError,
    SessionNotFoundError,
)
from orchestrator.types import SessionConfig, SessionHandle

logger = logging.getLogger(__name__)


class SessionManager:
    def __init__(
        self,
        max_sessions: int = 4,
        idle_timeout_seconds: float = 300.0,
        monitor_interval_seconds: float = 2.0,
        model: InferenceModel | None = None,
        store: SettingsStore | None = None,
    ):
        self._sessions: dict[str, SessionHandle] = {}
        self._lock = threading.Lock()
        self._max_sessions = max_sessions
        self._idle_timeout_seconds = idle_timeout_seconds
        self._monitor_interval_seconds = monitor_interval_seconds
        self._model = model
        self._store = store or settings_store
        self._monitor_thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    @property
    def model(self) -> InferenceModel | None:
        return self._model

    def _spawn_handle(self, config: SessionConfig) -> SessionHandle:
        settings = self._store.current()
        context = PipelineContext(model=self._model, line_limit=settings.trace.line_limit)
        pipeline = FramePipeline(context, store=self._store)
        worker = FrameWorker(pipeline)
        debug_capture = None
        if config.debug_capture:
            debug_capture = DebugCaptureLoop(worker.take_overlay, interval=config.debug_interval_seconds)
            debug_capture.start()
        return SessionHandle(
            config=config,
            context=context,
            pipeline=pipeline,
            worker=worker,
            debug_capture=debug_capture,
        )

    def start_session(self, config: SessionConfig) -> SessionHandle:
        with self._lock:
            if config.session_id in self._sessions:
                raise SessionAlreadyRunningError(f"Session '{config.session_id}' is already running")
            if len(self._sessions) >= self._max_sessions:
                raise ResourceLimitExceededError("Max concurrent sessions reached")
            handle = self._spawn_handle(config)
            self._sessions[config.session_id] = handle
            logger.info("Started session '%s'", config.session_id)
            return handle

    def stop_session(self, session_id: str):
        with self._lock:
            handle = self._sessions.pop(session_id, None)
        if not handle:
            raise SessionNotFoundError(f"Session '{session_id}' not found")

        handle.close()
        logger.info("Stopped session '%s'", session_id)

    def get_session(self, session_id: str) -> SessionHandle:
        with self._lock:
            handle = self._sessions.get(session_id)
            if not handle:
                raise SessionNotFoundError(f"Session '{session_id}' not found")
            return handle

    def touch_session(self, session_id: str):
        with self._lock:
            handle = self._sessions.get(session_id)
            if handle:
                handle.last_heartbeat = time.monotonic()

    def list_sessions(self) -> list[dict]:
        with self._lock:
            return [h.to_dict() for h in self._sessions.values()]

    def start_monitoring(self):
        if self._monitor_thread and self._monitor_thread.is_alive():
            return
        self._stop_event.clear()
        self._monitor_thread = threading.Thread(target=self._monitor_loop, daemon=True)
        self._monitor_thread.start()
        logger.info("Session monitor started")

    def stop_monitoring(self):
        self._stop_event.set()
        if self._monitor_thread:
            self._monitor_thread.join(timeout=5)
            self._monitor_thread = None
        logger.info("Session monitor stopped")

    def shutdown(self):
        self.stop_monitoring()
        with self._lock:
            handles = list(self._sessions.values())
            self._sessions.clear()
        for handle in handles:
            handle.close()
        logger.info("Session manager shutdown complete")

    def _monitor_loop(self):
        while not self._stop_event.wait(self._monitor_interval_seconds):
            if self._idle_timeout_seconds <= 0:
                continue
            now = time.monotonic()
            with self._lock:
                snapshot = list(self._sessions.items())

            idle_ids = [
                sid for sid, h in snapshot
                if (now - h.last_heartbeat) > self._idle_timeout_seconds
            ]
            for sid in idle_ids:
                logger.info(
                    "Stopping idle session '%s' (no frames for %.0fs)",
                    sid, self._idle_timeout_seconds,
                )
                try:
                    self.stop_session(sid)
                except SessionNotFoundError:
                    pass
