"""Upstream portfolio providers module."""

from chainfolio.providers.portfolio_provider import PortfolioProvider
from chainfolio.providers.inch_provider import InchPortfolioProvider, normalize_positions
from chainfolio.providers.stub_provider import StubPortfolioProvider

__all__ = [
    "PortfolioProvider",
    "InchPortfolioProvider",
    "normalize_positions",
    "StubPortfolioProvider",
]
