"""
Trace buffers, rendering, and classifier export.

Two bounded buffers grow together: the raw detection centres and the
Kalman-smoothed points. The smoothed buffer is what gets drawn as a spline and
exported as a 28x28 bitmap for handwriting-style classification.
"""
from __future__ import annotations

from collections import deque
from typing import Deque, Iterable, Sequence, Tuple

import cv2
import numpy as np
from scipy.interpolate import CubicSpline

from common.settings import TraceSettings
from cv import config
from cv.smoothing import PointSmoother
from cv.types import Point


class TraceBuffers:
    """Raw and smoothed trace, both capped at the configured line limit."""

    def __init__(self, line_limit: int):
        self.raw: Deque[Point] = deque(maxlen=line_limit)
        self.smooth: Deque[Point] = deque(maxlen=line_limit)

    @property
    def line_limit(self) -> int:
        return self.raw.maxlen

    def resize(self, line_limit: int) -> None:
        if line_limit == self.raw.maxlen:
            return
        # deque(maxlen=...) keeps the most recent points.
        self.raw = deque(self.raw, maxlen=line_limit)
        self.smooth = deque(self.smooth, maxlen=line_limit)

    def clear(self) -> None:
        self.raw.clear()
        self.smooth.clear()

    def __len__(self) -> int:
        return len(self.smooth)


def record_point(
    buffers: TraceBuffers,
    smoother: PointSmoother,
    point: Point,
    line_limit: int,
) -> Point:
    buffers.resize(line_limit)
    smoothed = smoother.smooth(point)
    buffers.raw.append(point)
    buffers.smooth.append(smoothed)
    return smoothed


def spline_points(points: Sequence[Point], step: float) -> np.ndarray:
    """Natural cubic spline through `points`, parameterized by sample index.

    Returns an (M, 2) float array, empty for fewer than 3 points.
    """
    if len(points) < 3 or step <= 0:
        return np.empty((0, 2), dtype=np.float64)
    xy = np.asarray(points, dtype=np.float64)
    t = np.arange(len(xy), dtype=np.float64)
    spline = CubicSpline(t, xy, bc_type="natural")
    # Small epsilon so floating accumulation does not drop the final sample.
    samples = np.arange(0.0, (len(xy) - 1) + 1e-9, step)
    return spline(samples)


def _draw_polyline(image: np.ndarray, pts: np.ndarray, color: Tuple[int, ...], thickness: int) -> None:
    if len(pts) < 2:
        return
    cv2.polylines(
        image,
        [np.round(pts).astype(np.int32).reshape(-1, 1, 2)],
        isClosed=False,
        color=color,
        thickness=thickness,
    )


def draw_raw_trace(image: np.ndarray, points: Sequence[Point], color, thickness: int) -> None:
    _draw_polyline(image, np.asarray(points, dtype=np.float64).reshape(-1, 2), color, thickness)


def draw_spline_curve(image: np.ndarray, points: Sequence[Point], color, thickness: int, step: float) -> None:
    _draw_polyline(image, spline_points(points, step), color, thickness)


def draw_trace(
    image: np.ndarray,
    raw: Sequence[Point],
    smooth: Sequence[Point],
    settings: TraceSettings,
) -> np.ndarray:
    if settings.raw_enabled:
        draw_raw_trace(image, raw, settings.raw_color, settings.thickness)
    if settings.spline_enabled:
        draw_spline_curve(image, smooth, settings.spline_color, settings.thickness, settings.spline_step)
    return image


def export_trace_bitmap(points: Sequence[Point], step: float = 0.01) -> np.ndarray:
    """Render the trace black-on-white, centred in a padded square, scaled to 28x28."""
    if not points:
        return np.full((1, 1), 255, dtype=np.uint8)

    xy = np.asarray(points, dtype=np.float64)
    min_x, min_y = xy.min(axis=0)
    max_x, max_y = xy.max(axis=0)
    padding = config.EXPORT_PADDING_PX

    optimal_w = max(int(max_x - min_x + 2 * padding), 1)
    optimal_h = max(int(max_y - min_y + 2 * padding), 1)
    side = max(optimal_w, optimal_h)
    canvas = np.full((side, side), 255, dtype=np.uint8)

    x_offset = (side - optimal_w) / 2.0
    y_offset = (side - optimal_h) / 2.0
    adjusted = [
        Point(p.x - min_x + padding + x_offset, p.y - min_y + padding + y_offset)
        for p in points
    ]
    draw_spline_curve(canvas, adjusted, config.EXPORT_LINE_COLOR[0], config.EXPORT_LINE_THICKNESS, step)

    return cv2.resize(canvas, (config.EXPORT_SIZE, config.EXPORT_SIZE), interpolation=cv2.INTER_AREA)


def format_trace_coordinates(points: Iterable[Point]) -> str:
    return ";".join(f"{p.x},{p.y},0.0" for p in points)
