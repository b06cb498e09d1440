"""
Per-session frame pipeline.

One `PipelineContext` per camera session owns everything that persists across
frames: both trace buffers, the point smoother, the blink tracker pool and the
optional neural model. `FramePipeline.process` runs one frame against it.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

import numpy as np

from common.settings import DetectionMode, SettingsStore, settings_store
from common.types import LightSnapshot
from cv.blink import BlinkTrackerPool
from cv.detectors import Detector, create_detector
from cv.model import InferenceModel
from cv.preprocessing import validate_frame
from cv.smoothing import PointSmoother
from cv.trace import TraceBuffers, draw_trace, export_trace_bitmap, format_trace_coordinates, record_point
from cv.types import FrameResult

logger = logging.getLogger(__name__)


class PipelineContext:
    """Cross-frame state for one session."""

    def __init__(
        self,
        model: Optional[InferenceModel] = None,
        line_limit: int = 75,
        pool: Optional[BlinkTrackerPool] = None,
    ):
        self.model = model
        self.traces = TraceBuffers(line_limit)
        self.smoother = PointSmoother()
        self.pool = pool or BlinkTrackerPool()
        self._detectors: Dict[DetectionMode, Detector] = {}

    def detector_for(self, mode: DetectionMode) -> Detector:
        detector = self._detectors.get(mode)
        if detector is None:
            detector = create_detector(mode, model=self.model, pool=self.pool)
            self._detectors[mode] = detector
        return detector


class FramePipeline:
    def __init__(self, context: PipelineContext, store: SettingsStore | None = None):
        self.context = context
        self.store = store or settings_store

    def process(self, frame: np.ndarray) -> FrameResult:
        """Run one frame. Raises InvalidFrameError for empty or non-colour input."""
        settings = self.store.current()
        validate_frame(frame)
        mode = settings.detection_mode
        self.context.traces.resize(settings.trace.line_limit)
        recorded = None

        try:
            output = self.context.detector_for(mode).detect(frame, settings)

            if mode is not DetectionMode.BLINK:
                if output.center is not None:
                    record_point(
                        self.context.traces,
                        self.context.smoother,
                        output.center,
                        settings.trace.line_limit,
                    )
                    recorded = output.center
                if output.ran:
                    draw_trace(
                        output.overlay,
                        self.context.traces.raw,
                        self.context.traces.smooth,
                        settings.trace,
                    )
        except Exception:
            logger.exception("Frame processing failed in %s mode", mode.value)
            # A point already appended to the trace is still reported.
            return FrameResult(overlay=frame.copy(), secondary=frame.copy(), mode=mode.value, center=recorded)

        return FrameResult(
            overlay=output.overlay,
            secondary=output.secondary,
            mode=mode.value,
            center=output.center,
            box=output.box,
        )

    def reset(self) -> None:
        """Clear both traces. The smoother and light slots are left alone."""
        self.context.traces.clear()
        logger.info("Trace buffers cleared")

    def reset_smoother(self) -> None:
        self.context.smoother.reset()

    def _current_traces(self) -> TraceBuffers:
        """Trace buffers trimmed to the line limit in the current settings."""
        traces = self.context.traces
        traces.resize(self.store.current().trace.line_limit)
        return traces

    def export_trace(self) -> np.ndarray:
        step = self.store.current().trace.spline_step
        return export_trace_bitmap(list(self._current_traces().smooth), step=step)

    def trace_coordinates(self) -> str:
        return format_trace_coordinates(self._current_traces().smooth)

    def trace_length(self) -> int:
        return len(self._current_traces())

    def lights(self) -> List[LightSnapshot]:
        return self.context.pool.snapshot()
