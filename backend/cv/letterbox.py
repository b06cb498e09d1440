"""Aspect-preserving resize + pad, and the coordinate maps in and out of it."""
from __future__ import annotations

from typing import Tuple

import cv2
import numpy as np

from cv import config
from cv.types import LetterboxResult, Point


def letterbox(
    image: np.ndarray,
    target_size: Tuple[int, int],
    color: Tuple[int, int, int] = config.LETTERBOX_PAD_COLOR,
) -> LetterboxResult:
    """Fit `image` into `target_size` (width, height) without distortion."""
    target_w, target_h = target_size
    src_h, src_w = image.shape[:2]
    scale = min(target_w / src_w, target_h / src_h)

    new_w = max(1, int(src_w * scale))
    new_h = max(1, int(src_h * scale))
    resized = cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_LINEAR)

    pad_w = target_w - new_w
    pad_h = target_h - new_h
    left = pad_w // 2
    right = pad_w - left
    top = pad_h // 2
    bottom = pad_h - top

    padded = cv2.copyMakeBorder(
        resized, top, bottom, left, right, cv2.BORDER_CONSTANT, value=color
    )
    return LetterboxResult(image=padded, scale=scale, pad=(left, top))


def to_letterbox(point: Point, scale: float, pad: Tuple[int, int]) -> Point:
    return Point(point.x * scale + pad[0], point.y * scale + pad[1])


def from_letterbox(point: Point, scale: float, pad: Tuple[int, int]) -> Point:
    return Point((point.x - pad[0]) / scale, (point.y - pad[1]) / scale)
