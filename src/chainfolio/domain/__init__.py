"""Domain layer - pure business models with no external dependencies."""

from chainfolio.domain.address import normalize_address
from chainfolio.domain.chains import ChainDescriptor, ChainRegistry, DEFAULT_CHAINS
from chainfolio.domain.models import (
    JobStatus,
    ChainStatus,
    JobOutcome,
    StatusKey,
    StatusRecord,
    JobRequest,
)

__all__ = [
    "normalize_address",
    "ChainDescriptor",
    "ChainRegistry",
    "DEFAULT_CHAINS",
    "JobStatus",
    "ChainStatus",
    "JobOutcome",
    "StatusKey",
    "StatusRecord",
    "JobRequest",
]
