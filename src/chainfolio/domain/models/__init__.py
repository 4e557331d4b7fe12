"""Domain models package."""

from chainfolio.domain.models.enums import JobStatus, ChainStatus, JobOutcome
from chainfolio.domain.models.status import REQUEST_TIMED_OUT, StatusKey, StatusRecord
from chainfolio.domain.models.job import JobRequest

__all__ = [
    "JobStatus",
    "ChainStatus",
    "JobOutcome",
    "StatusKey",
    "StatusRecord",
    "REQUEST_TIMED_OUT",
    "JobRequest",
]
