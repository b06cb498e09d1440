"""
Runtime pipeline settings.

Every component reads an immutable `PipelineSettings` snapshot once per frame.
A settings client replaces the snapshot through `SettingsStore.update()`, so a
frame never observes a half-applied change to a single field.
"""
from __future__ import annotations

import os
import threading
from enum import Enum
from typing import Any, Dict, Tuple

from pydantic import BaseModel, ConfigDict, Field

Color = Tuple[int, int, int]  # BGR

# Trace palette: navy for the raw polyline, maize for the spline.
NAVY_BGR: Color = (76, 39, 0)
MAIZE_BGR: Color = (5, 203, 255)


def _truthy(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class DetectionMode(str, Enum):
    CONTOUR = "contour"
    NEURAL = "neural"
    BLINK = "blink"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class InferenceSettings(_Frozen):
    enabled: bool = Field(default_factory=lambda: _truthy(os.getenv("LIGHTTRACE_NEURAL_INFERENCE"), default=False))
    confidence_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    iou_threshold: float = Field(default=0.5, ge=0.0, le=1.0)


class TraceSettings(_Frozen):
    raw_enabled: bool = False
    spline_enabled: bool = True
    line_limit: int = Field(default=75, ge=1)
    spline_step: float = Field(default=0.01, gt=0.0, le=1.0)
    raw_color: Color = NAVY_BGR
    spline_color: Color = MAIZE_BGR
    thickness: int = Field(default=4, ge=1)


class BoundingBoxSettings(_Frozen):
    enabled: bool = True
    color: Color = NAVY_BGR
    thickness: int = Field(default=2, ge=1)


class BrightnessSettings(_Frozen):
    factor: float = Field(default=2.0, gt=0.0)
    threshold: float = Field(default=150.0, ge=0.0, le=255.0)


class ExportSettings(_Frozen):
    frame_image: bool = True
    video_data: bool = False


class PipelineSettings(_Frozen):
    detection_mode: DetectionMode = Field(
        default_factory=lambda: DetectionMode(os.getenv("LIGHTTRACE_DETECTION_MODE", "contour").strip().lower())
    )
    inference: InferenceSettings = Field(default_factory=InferenceSettings)
    trace: TraceSettings = Field(default_factory=TraceSettings)
    bounding_box: BoundingBoxSettings = Field(default_factory=BoundingBoxSettings)
    brightness: BrightnessSettings = Field(default_factory=BrightnessSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)


def _deep_merge(base: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class SettingsStore:
    """Copy-on-write holder for the process-wide `PipelineSettings`."""

    def __init__(self, initial: PipelineSettings | None = None):
        self._lock = threading.Lock()
        self._current = initial or PipelineSettings()

    def current(self) -> PipelineSettings:
        with self._lock:
            return self._current

    def update(self, patch: Dict[str, Any]) -> PipelineSettings:
        """Validate a partial (nested) patch and swap in the new snapshot.

        Raises pydantic.ValidationError and leaves the old snapshot in place
        when the merged settings are invalid.
        """
        with self._lock:
            merged = _deep_merge(self._current.model_dump(), patch)
            self._current = PipelineSettings.model_validate(merged)
            return self._current

    def reset(self) -> PipelineSettings:
        with self._lock:
            self._current = PipelineSettings()
            return self._current


settings_store = SettingsStore()
