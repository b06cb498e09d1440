"""
Brightness preprocessing shared by the contour detector.

gray -> multiply (saturating) -> zero below threshold -> blur -> close
"""
from __future__ import annotations

import cv2
import numpy as np

from cv import config
from cv.exceptions import InvalidFrameError


def validate_frame(frame: np.ndarray) -> None:
    """Reject frames the pipeline cannot process."""
    if frame is None or frame.size == 0:
        raise InvalidFrameError("Frame is empty")
    if frame.ndim != 3 or frame.shape[2] < 3:
        raise InvalidFrameError(f"Expected a colour frame, got shape {frame.shape}")


def to_gray(frame: np.ndarray) -> np.ndarray:
    if frame.shape[2] == 4:
        return cv2.cvtColor(frame, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)


def preprocess_frame(frame: np.ndarray, factor: float, threshold: float) -> np.ndarray:
    validate_frame(frame)
    gray = to_gray(frame)

    # convertScaleAbs saturates to [0, 255] like an 8-bit multiply.
    boosted = cv2.convertScaleAbs(gray, alpha=factor, beta=0)

    # Keep-bright, zero-dark. Values at or above the threshold pass through unchanged.
    kept = np.where(boosted >= threshold, boosted, 0).astype(np.uint8)

    blurred = cv2.GaussianBlur(kept, config.BLUR_KERNEL, 0)
    kernel = cv2.getStructuringElement(cv2.MORPH_RECT, config.CLOSE_KERNEL)
    return cv2.morphologyEx(blurred, cv2.MORPH_CLOSE, kernel)
