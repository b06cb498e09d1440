"""Path configuration for the backend."""
import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parents[2]
load_dotenv(dotenv_path=BASE_DIR / ".env")


def _dir_from_env(name: str, default: Path) -> Path:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    path = Path(raw)
    return path if path.is_absolute() else (BASE_DIR / path)


# Directories
DATA_DIR = _dir_from_env("LIGHTTRACE_DATA_DIR", BASE_DIR / "data")
MODELS_DIR = _dir_from_env("LIGHTTRACE_MODELS_DIR", BASE_DIR / "models")

# 28x28 trace images for classifier training land here, one file per export.
TRAINING_DATA_DIR = _dir_from_env("LIGHTTRACE_TRAINING_DIR", DATA_DIR / "ml_training_data")
DEBUG_CAPTURE_DIR = _dir_from_env("LIGHTTRACE_DEBUG_DIR", DATA_DIR / "debug")

# Optional TorchScript detector; the neural mode runs without detections when absent.
DEFAULT_MODEL_PATH = os.getenv("LIGHTTRACE_MODEL_PATH", "").strip() or None
