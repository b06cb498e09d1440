"""Drawing helpers for detection overlays."""
from __future__ import annotations

import cv2
import numpy as np

from common.settings import BoundingBoxSettings
from common.types import BoundingBox
from cv import config


def format_box_label(box: BoundingBox, label: str = config.DETECTION_LABEL) -> str:
    return f"{label} ({box.confidence * 100:.2f}%)"


def draw_bounding_box(image: np.ndarray, box: BoundingBox, settings: BoundingBoxSettings) -> np.ndarray:
    top_left = (int(box.x1), int(box.y1))
    bottom_right = (int(box.x2), int(box.y2))
    cv2.rectangle(image, top_left, bottom_right, settings.color, settings.thickness)

    label = format_box_label(box)
    font = cv2.FONT_HERSHEY_SIMPLEX
    (text_w, text_h), baseline = cv2.getTextSize(label, font, config.LABEL_FONT_SCALE, config.LABEL_THICKNESS)
    text_x = int(box.x1)
    text_y = max(int(box.y1 - 5), 10)

    cv2.rectangle(
        image,
        (text_x, text_y + baseline),
        (text_x + text_w, text_y - text_h),
        settings.color,
        cv2.FILLED,
    )
    cv2.putText(
        image,
        label,
        (text_x, text_y),
        font,
        config.LABEL_FONT_SCALE,
        (255, 255, 255),
        config.LABEL_THICKNESS,
    )
    return image
