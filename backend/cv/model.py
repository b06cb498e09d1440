"""
Neural model adapter.

The pipeline only needs `input_size` and `run(image) -> [1, 5, N]`. The
concrete backend is a TorchScript export; anything with the same two members
can stand in for it.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol, Tuple

import numpy as np
import torch

from common.config import MODELS_DIR
from cv import config

logger = logging.getLogger(__name__)


class InferenceModel(Protocol):
    @property
    def input_size(self) -> Optional[Tuple[int, int]]:
        """(width, height) the model expects, or None if undeclared."""

    def run(self, image: np.ndarray) -> np.ndarray:
        """Letterboxed BGR uint8 image in, raw [1, 5, N] predictions out."""


class TorchScriptModel:
    def __init__(self, path: Path, input_size: Optional[Tuple[int, int]] = None):
        self.device = "cuda" if torch.cuda.is_available() else "cpu"
        logger.info("Loading TorchScript model from %s on %s", path, self.device)
        self.module = torch.jit.load(str(path), map_location=self.device)
        self.module.eval()
        self._input_size = input_size or self._declared_input_size()

    def _declared_input_size(self) -> Optional[Tuple[int, int]]:
        size = getattr(self.module, "input_size", None)
        if isinstance(size, (list, tuple)) and len(size) == 2:
            return int(size[0]), int(size[1])
        return None

    @property
    def input_size(self) -> Optional[Tuple[int, int]]:
        return self._input_size

    def run(self, image: np.ndarray) -> np.ndarray:
        rgb = image[:, :, 2::-1]  # BGR(A) -> RGB
        tensor = torch.from_numpy(np.ascontiguousarray(rgb)).to(self.device)
        tensor = tensor.permute(2, 0, 1).unsqueeze(0).float() / 255.0
        with torch.inference_mode():
            output = self.module(tensor)
        if isinstance(output, (list, tuple)):
            output = output[0]
        return output.detach().cpu().numpy()


def _resolve_path(model_path: str | Path) -> Path | None:
    path = Path(model_path)
    if path.exists():
        return path
    models_path = MODELS_DIR / model_path
    if models_path.exists():
        return models_path
    return None


def load_model(model_path: str | Path | None) -> InferenceModel | None:
    """Load a model, or return None (and log why) so frames keep flowing without it."""
    if not model_path:
        logger.info("No model configured; neural detection will report nothing")
        return None
    path = _resolve_path(model_path)
    if path is None:
        logger.error("Model file not found: %s", model_path)
        return None
    try:
        return TorchScriptModel(path)
    except Exception:
        logger.exception("Failed to load model from %s", path)
        return None


def model_input_size(model: InferenceModel | None) -> Tuple[int, int]:
    if model is not None and model.input_size:
        return model.input_size
    return config.DEFAULT_INPUT_SIZE
