"""View models for service outputs."""

from chainfolio.domain.views.portfolio import (
    TokenAmount,
    Position,
    ChainSummary,
    AggregatedPortfolio,
    StatusView,
)

__all__ = [
    "TokenAmount",
    "Position",
    "ChainSummary",
    "AggregatedPortfolio",
    "StatusView",
]
