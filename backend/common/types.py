"""
Pydantic models shared by the pipeline and the API.
"""
from __future__ import annotations

from typing import Optional, Tuple

from pydantic import BaseModel


class BoundingBox(BaseModel):
    """Axis-aligned box in original-image pixel coordinates."""
    x1: float
    y1: float
    x2: float
    y2: float
    confidence: float = 1.0
    class_id: int = 1

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.x1 + self.x2) / 2.0, (self.y1 + self.y2) / 2.0)


class LightSnapshot(BaseModel):
    """Read-only view of one blink tracker slot."""
    slot: int
    region: Optional[Tuple[int, int, int, int]] = None  # x, y, w, h
    frequency_hz: float = 0.0
    samples: int = 0
    last_center: Optional[Tuple[float, float]] = None


class FrameSummary(BaseModel):
    """What the API reports back for one processed frame."""
    mode: str
    detected: bool
    center: Optional[Tuple[float, float]] = None
    box: Optional[BoundingBox] = None
    trace_length: int = 0
