"""Application-level exceptions."""

from typing import Optional


class AppError(Exception):
    """Base exception for application errors."""

    status_code = 400

    def __init__(self, message: str, code: str = "APP_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(AppError):
    """Raised when input validation fails."""

    def __init__(self, message: str):
        super().__init__(message, code="VALIDATION_ERROR")


class NotFoundError(AppError):
    """Raised when a requested resource is not found."""

    status_code = 404

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} not found: {identifier}", code="NOT_FOUND")


class QueueFullError(AppError):
    """Raised when a bounded job queue cannot accept another submission."""

    status_code = 503

    def __init__(self, max_size: int):
        super().__init__(
            f"Job queue is full ({max_size} pending requests), try again later",
            code="QUEUE_FULL",
        )


class UpstreamError(AppError):
    """Raised when the upstream portfolio provider returns an error or is unreachable."""

    status_code = 502

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message, code="UPSTREAM_ERROR")


class UpstreamTimeout(UpstreamError):
    """Raised when the upstream provider does not answer within the deadline."""

    status_code = 504

    def __init__(self, timeout_seconds: float):
        super().__init__(f"Upstream request timed out after {timeout_seconds:g}s")
        self.code = "UPSTREAM_TIMEOUT"
