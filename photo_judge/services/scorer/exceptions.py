"""Vision scorer exception hierarchy

Structured exception types for scorer backend errors:
- ScorerError: Base class for all scorer errors
- BackendUnreachableError: The backend cannot be reached at all
- ScorerTimeoutError: A single analysis exceeded its time budget
- ScorerResponseError: The backend answered with an error or garbage
- ScorerOverloadedError: Transient 5xx answer, retried with backoff
"""

from typing import Optional


class ScorerError(Exception):
    """Base exception for all vision scorer errors."""

    def __init__(self, message: str, backend: Optional[str] = None):
        self.backend = backend
        super().__init__(message)


class BackendUnreachableError(ScorerError):
    """Raised when the scorer backend cannot be reached.

    This is fatal for the current batch: every remaining photo would
    fail the same way, so the driver saves and stops.
    """

    def __init__(
        self,
        message: str = "Vision backend unreachable",
        backend: Optional[str] = None,
    ):
        super().__init__(message, backend=backend)


class ScorerTimeoutError(ScorerError):
    """Raised when one analysis exceeds its timeout.

    Attributes:
        timeout_seconds: The budget that was exceeded
    """

    def __init__(
        self,
        message: str = "Analysis timeout",
        timeout_seconds: Optional[float] = None,
        backend: Optional[str] = None,
    ):
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"{message} after {timeout_seconds}s" if timeout_seconds else message,
            backend=backend,
        )


class ScorerResponseError(ScorerError):
    """Raised when the backend returns an error status or unusable body.

    Attributes:
        status: HTTP status, if any
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        backend: Optional[str] = None,
    ):
        self.status = status
        super().__init__(message, backend=backend)


class ScorerOverloadedError(ScorerResponseError):
    """Raised on 5xx answers (model loading, overloaded server).

    This is retryable with backoff.
    """

    pass
