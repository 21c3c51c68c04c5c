"""Exceptions raised by the replicate_client package."""

from typing import Optional


class ReplicateError(Exception):
    """Base class for errors raised by this package."""


class ServerError(ReplicateError):
    """Exception raised when server returns an error."""

    def __init__(self, status_code: int, message: str, title: Optional[str] = None):
        self.status_code = status_code
        self.message = message
        self.title = title
        super().__init__(f"Server error {status_code}: {message}")


class PredictionError(ReplicateError):
    """A prediction operation failed.

    The message names the stage that failed (for example
    ``failed to create prediction``); the underlying error is kept as
    ``__cause__``.
    """
