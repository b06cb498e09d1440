"""
Internal data structures for the CV pipeline.
"""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, NamedTuple, Optional

import numpy as np

from common.types import BoundingBox
from cv import config


class Point(NamedTuple):
    x: float
    y: float


class Rect(NamedTuple):
    x: int
    y: int
    w: int
    h: int

    @property
    def area(self) -> int:
        return self.w * self.h

    @property
    def center(self) -> Point:
        return Point(self.x + self.w / 2.0, self.y + self.h / 2.0)


@dataclass
class Detection:
    """One anchor from the neural detector, normalized to model-input space."""
    x_center: float
    y_center: float
    width: float
    height: float
    confidence: float

    def to_xyxy(self) -> tuple[float, float, float, float]:
        half_w = self.width / 2.0
        half_h = self.height / 2.0
        return (
            self.x_center - half_w,
            self.y_center - half_h,
            self.x_center + half_w,
            self.y_center + half_h,
        )


@dataclass
class LetterboxResult:
    image: np.ndarray
    scale: float
    pad: tuple[int, int]  # (left, top)


@dataclass
class TrackedLight:
    """One slot of the blink tracker pool."""
    region: Optional[Rect] = None
    history: Deque[bool] = field(default_factory=lambda: deque(maxlen=config.LED_HISTORY_SIZE))
    frequency_hz: float = 0.0
    last_center: Optional[Point] = None


@dataclass
class DetectorOutput:
    """What a detection strategy hands back for one frame."""
    overlay: np.ndarray
    secondary: np.ndarray
    center: Optional[Point] = None
    box: Optional[BoundingBox] = None
    # False when the strategy never got to look for a target (e.g. inference off).
    ran: bool = True


@dataclass
class FrameResult:
    """Processed frame results for the presentation layer."""
    overlay: np.ndarray
    secondary: np.ndarray
    mode: str
    center: Optional[Point] = None
    box: Optional[BoundingBox] = None
