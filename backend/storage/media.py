"""
Local image storage for debug captures and classifier training exports.
"""
from __future__ import annotations

import logging
import time
from pathlib import Path

import cv2
import numpy as np

from common.config import DEBUG_CAPTURE_DIR, TRAINING_DATA_DIR

logger = logging.getLogger(__name__)

CLASSIFICATION_PREFIX = "DrawnLine_28x28"


def _millis() -> int:
    return int(time.time() * 1000)


def _write_png(image: np.ndarray, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    if not cv2.imwrite(str(path), image):
        raise OSError(f"Failed to write image to {path}")
    return path


def save_debug_image(image: np.ndarray, label: str, directory: Path | str = DEBUG_CAPTURE_DIR) -> Path:
    path = _write_png(image, Path(directory) / f"{label}_{_millis()}.png")
    logger.debug("Saved debug image %s", path.name)
    return path


def classification_output_path(directory: Path | str = TRAINING_DATA_DIR) -> Path:
    return Path(directory) / f"{CLASSIFICATION_PREFIX}_{_millis()}.png"


def write_classification_image(image: np.ndarray, directory: Path | str = TRAINING_DATA_DIR) -> Path:
    path = _write_png(image, classification_output_path(directory))
    logger.info("Saved trace export to %s", path)
    return path


def encode_png(image: np.ndarray) -> bytes:
    ok, buffer = cv2.imencode(".png", image)
    if not ok:
        raise ValueError("Failed to encode image as PNG")
    return buffer.tobytes()
