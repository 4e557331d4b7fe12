"""Service layer - business logic orchestration."""

from chainfolio.services.submission_service import SubmissionService
from chainfolio.services.aggregation_service import AggregationService

__all__ = [
    "SubmissionService",
    "AggregationService",
]
