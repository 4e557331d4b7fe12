"""Pydantic schemas for portfolio fetch and aggregation API."""

from typing import Any, Optional

from pydantic import BaseModel, Field


class FetchRequest(BaseModel):
    """Request body for a single-chain fetch."""

    chain_id: int = Field(..., description="Chain ID (e.g. 1 for Ethereum, 137 for Polygon)")
    address: str = Field(..., description="0x-prefixed wallet address")


class FetchAllRequest(BaseModel):
    """Request body for a fetch across every supported chain."""

    address: str = Field(..., description="0x-prefixed wallet address")


class FetchResponse(BaseModel):
    """Handle for polling a single request."""

    request_id: str


class FetchAllResponse(BaseModel):
    """Handles for polling, one per supported chain in registry order."""

    request_ids: list[str]


class StatusResponse(BaseModel):
    """Status of a fetch request: data when completed, error when failed."""

    request_id: str
    chain_id: int
    address: str
    status: str
    timestamp: int
    data: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    position: Optional[int] = None


class TokenAmountResponse(BaseModel):
    """Underlying token of a position."""

    address: str
    symbol: str
    name: str
    amount: float
    price_usd: float
    value_usd: float


class PositionResponse(BaseModel):
    """A single protocol position."""

    chain_id: int
    protocol: str
    name: str
    contract_address: str
    value_usd: float
    underlying_tokens: list[TokenAmountResponse]


class ChainSummaryResponse(BaseModel):
    """Per-chain status line."""

    id: int
    name: str
    status: str
    error: Optional[str] = None
    value_usd: Optional[float] = None
    timestamp: Optional[int] = None


class AggregatedPortfolioResponse(BaseModel):
    """Aggregated portfolio of an address across supported chains."""

    address: str
    timestamp: int
    total_value_usd: float
    chains: list[ChainSummaryResponse]
    positions: list[PositionResponse]


class ChainResponse(BaseModel):
    """A supported chain."""

    id: int
    name: str
