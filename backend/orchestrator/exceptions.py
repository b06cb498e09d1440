"""Custom exceptions for session orchestration."""


class OrchestratorError(Exception):
    """Base orchestrator exception."""


class ResourceLimitExceededError(OrchestratorError):
    """Raised when max concurrent sessions is reached."""


class SessionAlreadyRunningError(OrchestratorError):
    """Raised when attempting to start an already running session."""


class SessionNotFoundError(OrchestratorError):
    """Raised when a session does not exist in the registry."""
