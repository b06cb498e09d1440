"""Custom exceptions for the frame pipeline."""


class PipelineError(Exception):
    """Base pipeline exception."""


class InvalidFrameError(PipelineError, ValueError):
    """Raised when a frame is empty or does not carry colour channels."""


class FrameInFlightError(PipelineError):
    """Raised when trace state is touched while a frame is being processed."""
