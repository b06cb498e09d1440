"""Constant-velocity Kalman smoothing for the primary trace point."""
from __future__ import annotations

import cv2
import numpy as np

from cv import config
from cv.types import Point


class PointSmoother:
    """State (x, y, vx, vy), measurement (x, y). Predict-then-correct per point."""

    def __init__(
        self,
        process_noise: float = config.KALMAN_PROCESS_NOISE,
        measurement_noise: float = config.KALMAN_MEASUREMENT_NOISE,
    ):
        self._process_noise = process_noise
        self._measurement_noise = measurement_noise
        self.kf = self._build_filter()

    def _build_filter(self) -> cv2.KalmanFilter:
        kf = cv2.KalmanFilter(4, 2)
        kf.transitionMatrix = np.array([
            [1, 0, 1, 0], [0, 1, 0, 1], [0, 0, 1, 0], [0, 0, 0, 1]
        ], dtype=np.float32)
        kf.measurementMatrix = np.array([
            [1, 0, 0, 0], [0, 1, 0, 0]
        ], dtype=np.float32)
        kf.processNoiseCov = np.eye(4, dtype=np.float32) * self._process_noise
        kf.measurementNoiseCov = np.eye(2, dtype=np.float32) * self._measurement_noise
        kf.errorCovPost = np.eye(4, dtype=np.float32)
        kf.statePost = np.zeros((4, 1), dtype=np.float32)
        return kf

    def smooth(self, point: Point) -> Point:
        self.kf.predict()
        measurement = np.array([[point.x], [point.y]], dtype=np.float32)
        corrected = self.kf.correct(measurement)
        return Point(float(corrected[0, 0]), float(corrected[1, 0]))

    def reset(self) -> None:
        self.kf = self._build_filter()
