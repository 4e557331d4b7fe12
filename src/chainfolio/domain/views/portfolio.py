"""View models for portfolio and status outputs."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from chainfolio.domain.models.enums import ChainStatus, JobStatus


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"Not a numeric value: {value!r}")
    return Decimal(str(value))


@dataclass
class TokenAmount:
    """Underlying token held inside a position."""

    address: str
    symbol: str
    name: str
    amount: Decimal
    price_usd: Decimal
    value_usd: Decimal

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TokenAmount":
        return cls(
            address=data.get("address") or "",
            symbol=data.get("symbol") or "",
            name=data.get("name") or "",
            amount=_to_decimal(data.get("amount", 0)),
            price_usd=_to_decimal(data.get("price_usd", 0)),
            value_usd=_to_decimal(data.get("value_usd", 0)),
        )


@dataclass
class Position:
    """A single protocol position on one chain, valued in USD."""

    chain_id: int
    protocol: str
    name: str
    contract_address: str
    value_usd: Decimal
    underlying_tokens: list[TokenAmount] = field(default_factory=list)

    @classmethod
    def from_dict(cls, chain_id: int, data: dict[str, Any]) -> "Position":
        """Build from a normalized payload entry. Raises ValueError/KeyError on bad data."""
        return cls(
            chain_id=chain_id,
            protocol=data.get("protocol") or "",
            name=data.get("name") or "",
            contract_address=data.get("contract_address") or "",
            value_usd=_to_decimal(data["value_usd"]),
            underlying_tokens=[
                TokenAmount.from_dict(token) for token in data.get("underlying_tokens", [])
            ],
        )


@dataclass
class ChainSummary:
    """Per-chain status line of an aggregated portfolio."""

    id: int
    name: str
    status: ChainStatus
    error: Optional[str] = None
    value_usd: Optional[Decimal] = None
    timestamp: Optional[int] = None


@dataclass
class AggregatedPortfolio:
    """
    Read-time view of an address across all chains. Never persisted.

    total_value_usd and positions only include completed chains.
    """

    address: str
    timestamp: int
    total_value_usd: Decimal = field(default_factory=lambda: Decimal("0"))
    chains: list[ChainSummary] = field(default_factory=list)
    positions: list[Position] = field(default_factory=list)


@dataclass
class StatusView:
    """Caller-visible status of one request."""

    request_id: str
    chain_id: int
    address: str
    status: JobStatus
    timestamp: int
    data: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    position: Optional[int] = None  # 1-based queue position while waiting
