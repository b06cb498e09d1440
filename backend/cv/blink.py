"""
Blinking-light tracker pool.

A fixed set of slots, each following one small square light across frames and
estimating its blink rate from the on/off history. Slots are never created or
destroyed after startup; when all are taken, the least-blinking one is evicted.
"""
from __future__ import annotations

import logging
import math
from typing import List, Sequence

import cv2
import numpy as np

from common.types import LightSnapshot
from cv import config
from cv.types import Point, Rect, TrackedLight

logger = logging.getLogger(__name__)


def estimate_blink_frequency(
    history: Sequence[bool],
    shutter_fps: float = config.SHUTTER_FPS,
    standard_frequencies: Sequence[float] = config.LED_STANDARD_FREQUENCIES_HZ,
) -> float:
    """Count on->off transitions and snap the rate to the nearest standard frequency."""
    window = list(history)[-config.LED_HISTORY_SIZE:]
    if not window:
        return 0.0
    transitions = sum(1 for prev, cur in zip(window, window[1:]) if prev and not cur)
    if transitions == 0:
        return 0.0
    raw = transitions * shutter_fps / len(window)
    # min() returns the first minimum, so ties go to the earlier frequency.
    return min(standard_frequencies, key=lambda f: abs(f - raw))


def find_light_regions(gray: np.ndarray) -> List[Rect]:
    """Bright, roughly square, LED-sized regions in contour order."""
    _, binary = cv2.threshold(gray, config.LED_BINARY_THRESHOLD, 255, cv2.THRESH_BINARY)
    contours, _ = cv2.findContours(binary, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

    regions: List[Rect] = []
    for contour in contours:
        rect = Rect(*cv2.boundingRect(contour))
        if rect.h == 0:
            continue
        aspect = rect.w / rect.h
        if not (config.LED_MIN_ASPECT <= aspect <= config.LED_MAX_ASPECT):
            continue
        if not (config.LED_MIN_AREA <= rect.area <= config.LED_MAX_AREA):
            continue
        regions.append(rect)
    return regions


def _distance(a: Point, b: Point) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


class BlinkTrackerPool:
    def __init__(
        self,
        size: int = config.LED_POOL_SIZE,
        shutter_fps: float = config.SHUTTER_FPS,
    ):
        self.slots: List[TrackedLight] = [TrackedLight() for _ in range(size)]
        self.shutter_fps = shutter_fps

    def _assign_slot(self, center: Point) -> TrackedLight:
        for slot in self.slots:
            if slot.last_center is not None and _distance(slot.last_center, center) < config.LED_MATCH_DISTANCE_PX:
                return slot
        for slot in self.slots:
            if slot.region is None:
                return slot
        evicted = min(self.slots, key=lambda s: sum(1 for sample in s.history if not sample))
        logger.debug("Evicting light slot %d", self.slots.index(evicted))
        evicted.history.clear()
        return evicted

    def update(self, frame: np.ndarray) -> None:
        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        for rect in find_light_regions(gray):
            roi = gray[rect.y:rect.y + rect.h, rect.x:rect.x + rect.w]
            is_on = float(np.mean(roi)) > config.LED_ON_BRIGHTNESS
            center = rect.center

            slot = self._assign_slot(center)
            slot.history.append(is_on)
            slot.frequency_hz = estimate_blink_frequency(slot.history, self.shutter_fps)
            slot.region = rect
            slot.last_center = center

    def draw(self, image: np.ndarray) -> np.ndarray:
        for index, slot in enumerate(self.slots, start=1):
            if slot.region is None:
                continue
            x, y, w, h = slot.region
            cv2.rectangle(image, (x, y), (x + w, y + h), config.LED_BOX_COLOR, 2)
            cv2.putText(
                image,
                f"LED{index}: {slot.frequency_hz:.1f}Hz",
                (x, y - 10),
                cv2.FONT_HERSHEY_SIMPLEX,
                0.5,
                config.LED_LABEL_COLOR,
                2,
            )
        return image

    def snapshot(self) -> List[LightSnapshot]:
        return [
            LightSnapshot(
                slot=index,
                region=tuple(slot.region) if slot.region is not None else None,
                frequency_hz=slot.frequency_hz,
                samples=len(slot.history),
                last_center=tuple(slot.last_center) if slot.last_center is not None else None,
            )
            for index, slot in enumerate(self.slots, start=1)
        ]
