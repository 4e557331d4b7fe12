"""Pydantic schemas for API request/response."""

from chainfolio.api.schemas.portfolio import (
    FetchRequest,
    FetchAllRequest,
    FetchResponse,
    FetchAllResponse,
    StatusResponse,
    TokenAmountResponse,
    PositionResponse,
    ChainSummaryResponse,
    AggregatedPortfolioResponse,
    ChainResponse,
)

__all__ = [
    "FetchRequest",
    "FetchAllRequest",
    "FetchResponse",
    "FetchAllResponse",
    "StatusResponse",
    "TokenAmountResponse",
    "PositionResponse",
    "ChainSummaryResponse",
    "AggregatedPortfolioResponse",
    "ChainResponse",
]
