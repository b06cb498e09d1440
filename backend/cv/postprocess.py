"""
Neural detector output handling: confidence filter, NMS, best-box selection,
and the mapping from letterboxed model space back to original pixels.
"""
from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import numpy as np

from common.types import BoundingBox
from cv import config
from cv.letterbox import from_letterbox
from cv.types import Detection, LetterboxResult, Point

Box = Tuple[float, float, float, float]


def compute_iou(a: Sequence[float], b: Sequence[float]) -> float:
    """Intersection over union of two (x1, y1, x2, y2) boxes."""
    inter_x1 = max(a[0], b[0])
    inter_y1 = max(a[1], b[1])
    inter_x2 = min(a[2], b[2])
    inter_y2 = min(a[3], b[3])
    inter = max(0.0, inter_x2 - inter_x1) * max(0.0, inter_y2 - inter_y1)
    area_a = max(0.0, a[2] - a[0]) * max(0.0, a[3] - a[1])
    area_b = max(0.0, b[2] - b[0]) * max(0.0, b[3] - b[1])
    union = area_a + area_b - inter
    return inter / union if union > 0 else 0.0


def non_max_suppression(
    boxes: Sequence[Box],
    scores: Sequence[float],
    iou_threshold: float,
) -> List[int]:
    """Greedy NMS. Returns kept indices in descending score order."""
    order = sorted(range(len(boxes)), key=lambda i: scores[i], reverse=True)
    kept: List[int] = []
    while order:
        best = order.pop(0)
        kept.append(best)
        order = [i for i in order if compute_iou(boxes[best], boxes[i]) <= iou_threshold]
    return kept


def parse_model_output(
    raw: np.ndarray,
    confidence_threshold: float,
    iou_threshold: float,
) -> Optional[Detection]:
    """Reduce a [1, 5, N] tensor of (cx, cy, w, h, conf) anchors to one detection."""
    preds = np.asarray(raw, dtype=np.float32)
    if preds.ndim == 3:
        preds = preds[0]
    if preds.ndim != 2 or preds.shape[0] < 5 or preds.shape[1] == 0:
        return None

    conf = preds[4]
    candidates = np.flatnonzero(conf >= confidence_threshold)
    if candidates.size == 0:
        return None

    detections = [
        Detection(
            x_center=float(preds[0, i]),
            y_center=float(preds[1, i]),
            width=float(preds[2, i]),
            height=float(preds[3, i]),
            confidence=float(conf[i]),
        )
        for i in candidates
    ]
    boxes = [d.to_xyxy() for d in detections]
    kept = non_max_suppression(boxes, [d.confidence for d in detections], iou_threshold)
    if not kept:
        return None
    return max((detections[i] for i in kept), key=lambda d: d.confidence)


def rescale_detection(
    detection: Detection,
    letterboxed: LetterboxResult,
    input_size: Tuple[int, int],
) -> Tuple[BoundingBox, Point]:
    """Map a normalized detection back to original-image pixels."""
    input_w, input_h = input_size
    center = from_letterbox(
        Point(detection.x_center * input_w, detection.y_center * input_h),
        letterboxed.scale,
        letterboxed.pad,
    )
    width = detection.width * input_w / letterboxed.scale
    height = detection.height * input_h / letterboxed.scale

    box = BoundingBox(
        x1=center.x - width / 2.0,
        y1=center.y - height / 2.0,
        x2=center.x + width / 2.0,
        y2=center.y + height / 2.0,
        confidence=detection.confidence,
        class_id=config.DETECTION_CLASS_ID,
    )
    return box, center
