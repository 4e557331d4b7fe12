"""Enumerations for domain models."""

from enum import Enum


class JobStatus(str, Enum):
    """Persisted lifecycle status of a fetch request."""

    QUEUED = "queued"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.QUEUED


class ChainStatus(str, Enum):
    """Per-chain status reported by aggregation."""

    QUEUED = "queued"
    COMPLETED = "completed"
    FAILED = "failed"
    NOT_FOUND = "not_found"  # no record exists for the chain


class JobOutcome(str, Enum):
    """Result of one worker attempt."""

    COMPLETED = "completed"
    RETRIED = "retried"
    FAILED = "failed"
