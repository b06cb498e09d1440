"""FastAPI backend for light-trace sessions."""
from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict

import cv2
import numpy as np
from fastapi import FastAPI, HTTPException, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ValidationError

from common.config import DEFAULT_MODEL_PATH, TRAINING_DATA_DIR
from common.settings import settings_store
from common.types import FrameSummary
from cv.exceptions import FrameInFlightError, InvalidFrameError
from cv.model import load_model
from orchestrator import (
    ResourceLimitExceededError,
    SessionAlreadyRunningError,
    SessionConfig,
    SessionHandle,
    SessionManager,
    SessionNotFoundError,
)
from storage.media import encode_png, write_classification_image

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Light Trace Backend API",
    description="Per-frame light tracking, trace rendering and classifier export",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type"],
)

MAX_SESSIONS = int(os.getenv("MAX_SESSIONS", "4"))
SESSION_IDLE_TIMEOUT = float(os.getenv("SESSION_IDLE_TIMEOUT", "300"))

manager: SessionManager | None = None


class SessionStartRequest(BaseModel):
    debug_capture: bool = False
    debug_interval_seconds: float = 0.01


@asynccontextmanager
async def lifespan(_: FastAPI):
    global manager

    model = load_model(DEFAULT_MODEL_PATH)
    manager = SessionManager(
        max_sessions=MAX_SESSIONS,
        idle_timeout_seconds=SESSION_IDLE_TIMEOUT,
        model=model,
        store=settings_store,
    )
    manager.start_monitoring()

    yield

    if manager:
        manager.shutdown()
        manager = None


app.router.lifespan_context = lifespan


def _require_manager() -> SessionManager:
    if not manager:
        raise HTTPException(status_code=503, detail="Session manager not initialized")
    return manager


def _get_handle(session_id: str) -> SessionHandle:
    try:
        return _require_manager().get_session(session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


def _decode_image(data: bytes) -> np.ndarray:
    buffer = np.frombuffer(data, dtype=np.uint8)
    frame = cv2.imdecode(buffer, cv2.IMREAD_COLOR) if buffer.size else None
    if frame is None:
        raise HTTPException(status_code=400, detail="Could not decode image")
    return frame


@app.get("/health")
def health_check():
    current = _require_manager()
    return {
        "status": "ok",
        "model_loaded": current.model is not None,
        "sessions": len(current.list_sessions()),
    }


@app.get("/api/config")
def get_config():
    return settings_store.current().model_dump(mode="json")


@app.patch("/api/config")
def patch_config(patch: Dict[str, Any]):
    try:
        updated = settings_store.update(patch)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False))
    logger.info("Settings updated: %s", sorted(patch))
    return updated.model_dump(mode="json")


@app.post("/api/sessions/{session_id}/start", status_code=201)
async def start_session(session_id: str, request: SessionStartRequest | None = None):
    current = _require_manager()
    request = request or SessionStartRequest()
    try:
        config = SessionConfig(
            session_id=session_id,
            debug_capture=request.debug_capture,
            debug_interval_seconds=request.debug_interval_seconds,
        )
    except ValidationError:
        raise HTTPException(status_code=400, detail="Invalid session_id")

    try:
        handle = current.start_session(config)
    except SessionAlreadyRunningError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except ResourceLimitExceededError as exc:
        raise HTTPException(status_code=503, detail=str(exc))

    return {"status": "started", **handle.to_dict()}


@app.delete("/api/sessions/{session_id}", status_code=204)
async def stop_session(session_id: str):
    try:
        await asyncio.to_thread(_require_manager().stop_session, session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@app.get("/api/sessions")
async def list_sessions():
    return {"sessions": _require_manager().list_sessions(), "max_sessions": MAX_SESSIONS}


@app.post("/api/sessions/{session_id}/frames", response_model=FrameSummary)
async def submit_frame(session_id: str, file: UploadFile):
    handle = _get_handle(session_id)
    frame = _decode_image(await file.read())
    _require_manager().touch_session(session_id)

    try:
        future = handle.worker.submit(frame)
    except InvalidFrameError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    if future is None:
        raise HTTPException(status_code=429, detail="Frame dropped: previous frame still processing")

    result = await asyncio.wrap_future(future)
    return FrameSummary(
        mode=result.mode,
        detected=result.center is not None,
        center=tuple(result.center) if result.center is not None else None,
        box=result.box,
        trace_length=handle.pipeline.trace_length(),
    )


@app.get("/api/sessions/{session_id}/overlay")
async def get_overlay(session_id: str):
    handle = _get_handle(session_id)
    overlay = handle.worker.latest_overlay()
    if overlay is None:
        raise HTTPException(status_code=404, detail="No frame processed yet")
    return Response(content=encode_png(overlay), media_type="image/png")


@app.post("/api/sessions/{session_id}/reset")
async def reset_session(session_id: str, smoother: bool = False):
    handle = _get_handle(session_id)
    try:
        handle.worker.reset()
    except FrameInFlightError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    if smoother:
        handle.pipeline.reset_smoother()
    return {"status": "reset", "trace_length": handle.pipeline.trace_length()}


@app.get("/api/sessions/{session_id}/trace")
async def get_trace(session_id: str):
    handle = _get_handle(session_id)
    return {
        "points": handle.pipeline.trace_length(),
        "coordinates": handle.pipeline.trace_coordinates(),
    }


@app.post("/api/sessions/{session_id}/export")
async def export_trace(session_id: str):
    handle = _get_handle(session_id)
    settings = settings_store.current()
    image = handle.pipeline.export_trace()

    path = None
    if settings.export.frame_image:
        try:
            path = write_classification_image(image, TRAINING_DATA_DIR)
        except OSError as exc:
            raise HTTPException(status_code=500, detail=f"Failed to save export: {exc}")

    body = {
        "saved": path is not None,
        "path": str(path) if path else None,
        "width": int(image.shape[1]),
        "height": int(image.shape[0]),
    }
    if settings.export.video_data:
        body["coordinates"] = handle.pipeline.trace_coordinates()
    return body


@app.get("/api/sessions/{session_id}/lights")
async def get_lights(session_id: str):
    handle = _get_handle(session_id)
    return {"lights": [light.model_dump() for light in handle.pipeline.lights()]}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000, workers=1, loop="asyncio")
