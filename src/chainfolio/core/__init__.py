"""Core utilities and shared functionality."""

from chainfolio.core.clock import now_ms, new_request_id
from chainfolio.core.exceptions import (
    AppError,
    ValidationError,
    NotFoundError,
    QueueFullError,
    UpstreamError,
    UpstreamTimeout,
)

__all__ = [
    "now_ms",
    "new_request_id",
    "AppError",
    "ValidationError",
    "NotFoundError",
    "QueueFullError",
    "UpstreamError",
    "UpstreamTimeout",
]
