"""Types for camera session orchestration."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Optional

from pydantic import BaseModel, Field

from cv.pipeline import FramePipeline, PipelineContext
from cv.worker import DebugCaptureLoop, FrameWorker


class SessionConfig(BaseModel):
    """Runtime configuration for one camera session."""

    session_id: str = Field(..., min_length=1, pattern=r"^[a-zA-Z0-9_-]+$")
    debug_capture: bool = False
    debug_interval_seconds: float = Field(default=0.01, gt=0.0)


@dataclass
class SessionHandle:
    """Handle for one managed session: its pipeline state and worker."""

    config: SessionConfig
    context: PipelineContext
    pipeline: FramePipeline
    worker: FrameWorker
    debug_capture: Optional[DebugCaptureLoop] = None
    started_at: float = field(default_factory=time.monotonic)
    last_heartbeat: float = field(default_factory=time.monotonic)

    @property
    def session_id(self) -> str:
        return self.config.session_id

    def close(self):
        if self.debug_capture is not None:
            self.debug_capture.stop()
        self.worker.shutdown(wait=True)

    def to_dict(self) -> dict:
        return {
            "session_id": self.config.session_id,
            "busy": self.worker.busy,
            "processed_frames": self.worker.processed_count,
            "dropped_frames": self.worker.dropped_count,
            "trace_length": self.pipeline.trace_length(),
            "debug_capture": self.debug_capture is not None and self.debug_capture.running,
            "debug_images": self.debug_capture.captured if self.debug_capture else 0,
            "started_at_monotonic": self.started_at,
            "last_heartbeat_monotonic": self.last_heartbeat,
        }
