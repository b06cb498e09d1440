"""Camera session orchestration package."""

from .exceptions import (
    OrchestratorError,
    ResourceLimitExceededError,
    SessionAlreadyRunningError,
    SessionNotFoundError,
)
from .orchestrator import SessionManager
from .types import SessionConfig, SessionHandle

__all__ = [
    "OrchestratorError",
    "ResourceLimitExceededError",
    "SessionAlreadyRunningError",
    "SessionNotFoundError",
    "SessionConfig",
    "SessionHandle",
    "SessionManager",
]
