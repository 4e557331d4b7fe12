"""Chainfolio: rate-limited multichain portfolio fetching."""

__version__ = "0.1.0"
