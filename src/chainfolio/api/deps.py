"""Dependency injection for FastAPI."""

from fastapi import Depends

from chainfolio.app_context import AppContext, get_app_context
from chainfolio.domain.chains import ChainRegistry
from chainfolio.services import AggregationService, SubmissionService


def get_context() -> AppContext:
    """Provide the initialized application context."""
    context = get_app_context()
    context.initialize()
    return context


def get_submission_service(context: AppContext = Depends(get_context)) -> SubmissionService:
    """Provide SubmissionService instance."""
    return context.submission


def get_aggregation_service(context: AppContext = Depends(get_context)) -> AggregationService:
    """Provide AggregationService instance."""
    return context.aggregation


def get_registry(context: AppContext = Depends(get_context)) -> ChainRegistry:
    """Provide the chain registry."""
    return context.registry
