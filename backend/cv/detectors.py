"""
Detection strategies.

Each strategy turns one BGR frame into an overlay, a secondary image and at
most one trace point. The pipeline picks one per frame from the settings
snapshot, so strategies can be switched while a session runs.
"""
from __future__ import annotations

from typing import Optional, Protocol

import cv2
import numpy as np

from common.settings import DetectionMode, PipelineSettings
from cv.blink import BlinkTrackerPool
from cv.letterbox import letterbox
from cv.model import InferenceModel, model_input_size
from cv.overlay import draw_bounding_box
from cv.postprocess import parse_model_output, rescale_detection
from cv.preprocessing import preprocess_frame
from cv.types import DetectorOutput, Point


class Detector(Protocol):
    def detect(self, frame: np.ndarray, settings: PipelineSettings) -> DetectorOutput:
        ...


class ContourDetector:
    """Centroid of the largest bright blob after preprocessing."""

    def detect(self, frame: np.ndarray, settings: PipelineSettings) -> DetectorOutput:
        processed = preprocess_frame(
            frame,
            factor=settings.brightness.factor,
            threshold=settings.brightness.threshold,
        )
        overlay = cv2.cvtColor(processed, cv2.COLOR_GRAY2BGR)

        contours, _ = cv2.findContours(processed, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
        best = None
        best_area = 0.0
        best_moments = None
        for contour in contours:
            moments = cv2.moments(contour)
            if moments["m00"] == 0:
                continue
            area = cv2.contourArea(contour)
            if best is None or area > best_area:
                best, best_area, best_moments = contour, area, moments

        if best is None:
            return DetectorOutput(overlay=overlay, secondary=processed)

        center = Point(best_moments["m10"] / best_moments["m00"], best_moments["m01"] / best_moments["m00"])
        cv2.drawContours(
            overlay,
            [best],
            -1,
            settings.bounding_box.color,
            settings.bounding_box.thickness,
        )
        return DetectorOutput(overlay=overlay, secondary=processed, center=center)


class NeuralDetector:
    """Single-class box detector running on a letterboxed copy of the frame."""

    def __init__(self, model: Optional[InferenceModel]):
        self.model = model

    def detect(self, frame: np.ndarray, settings: PipelineSettings) -> DetectorOutput:
        input_size = model_input_size(self.model)
        letterboxed = letterbox(frame, input_size)
        overlay = frame.copy()

        if not settings.inference.enabled or self.model is None:
            return DetectorOutput(overlay=overlay, secondary=letterboxed.image, ran=False)

        raw = self.model.run(letterboxed.image)
        detection = parse_model_output(
            raw,
            confidence_threshold=settings.inference.confidence_threshold,
            iou_threshold=settings.inference.iou_threshold,
        )
        if detection is None:
            return DetectorOutput(overlay=overlay, secondary=letterboxed.image)

        box, center = rescale_detection(detection, letterboxed, input_size)
        if settings.bounding_box.enabled:
            draw_bounding_box(overlay, box, settings.bounding_box)
        return DetectorOutput(overlay=overlay, secondary=letterboxed.image, center=center, box=box)


class BlinkDetector:
    """Feeds the blink tracker pool. Never yields a trace point."""

    def __init__(self, pool: BlinkTrackerPool):
        self.pool = pool

    def detect(self, frame: np.ndarray, settings: PipelineSettings) -> DetectorOutput:
        bgr = np.ascontiguousarray(frame[:, :, :3])
        self.pool.update(bgr)
        overlay = self.pool.draw(bgr.copy())
        return DetectorOutput(overlay=overlay, secondary=frame)


def create_detector(
    mode: DetectionMode,
    model: Optional[InferenceModel] = None,
    pool: Optional[BlinkTrackerPool] = None,
) -> Detector:
    mode = DetectionMode(mode)
    if mode is DetectionMode.NEURAL:
        return NeuralDetector(model)
    if mode is DetectionMode.BLINK:
        return BlinkDetector(pool if pool is not None else BlinkTrackerPool())
    return ContourDetector()
