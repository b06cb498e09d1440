"""Shared test fixtures for backend tests.

Synthetic frames stand in for camera input and FakeModel stands in for the
neural detector, so tests run without a camera, GPU, or model file.
"""
from __future__ import annotations

import numpy as np
import pytest
from fastapi.testclient import TestClient

from common.settings import DetectionMode, PipelineSettings, SettingsStore


# ---------- Frame fixtures ----------

@pytest.fixture()
def blank_frame():
    return np.zeros((240, 320, 3), dtype=np.uint8)


# ---------- Settings fixtures ----------

@pytest.fixture()
def store():
    """Isolated settings store with env-independent defaults."""
    return SettingsStore(
        PipelineSettings(
            detection_mode=DetectionMode.CONTOUR,
            inference={"enabled": False},
        )
    )


# ---------- Pipeline fixtures ----------

@pytest.fixture()
def pipeline_factory(store):
    """Build a FramePipeline bound to the isolated store."""
    from cv.pipeline import FramePipeline, PipelineContext

    def _factory(model=None, **settings_patch) -> FramePipeline:
        if settings_patch:
            store.update(settings_patch)
        context = PipelineContext(model=model, line_limit=store.current().trace.line_limit)
        return FramePipeline(context, store=store)

    return _factory


# ---------- Session fixtures ----------

@pytest.fixture()
def manager_factory(store):
    """Create a SessionManager with an isolated settings store.

    Returns a factory function that accepts keyword overrides.
    Automatically shuts down all created managers on teardown.
    """
    from orchestrator import SessionManager

    created: list[SessionManager] = []

    def _factory(**kwargs) -> SessionManager:
        defaults = dict(max_sessions=8, monitor_interval_seconds=0.02, store=store)
        defaults.update(kwargs)
        manager = SessionManager(**defaults)
        created.append(manager)
        return manager

    yield _factory

    for manager in created:
        manager.shutdown()


@pytest.fixture()
def app_client(monkeypatch, tmp_path):
    """TestClient for the full api.app with exports redirected to tmp_path."""
    import api
    from common.settings import settings_store

    monkeypatch.setattr(api, "TRAINING_DATA_DIR", tmp_path)
    monkeypatch.setattr(api, "DEFAULT_MODEL_PATH", None)
    settings_store.update({"detection_mode": "contour", "inference": {"enabled": False}})

    with TestClient(api.app) as c:
        yield c

    settings_store.reset()
