"""Portfolio provider protocol."""

from typing import Any, Protocol


class PortfolioProvider(Protocol):
    """
    Protocol for upstream portfolio data providers.

    fetch() is a single attempt with no retries. It returns the normalized
    payload {"chain_id": int, "positions": [...]} and raises UpstreamError
    (or UpstreamTimeout) on any failure, including a malformed response.
    """

    def fetch(self, chain_id: int, address: str) -> dict[str, Any]:
        """Fetch and normalize the positions of address on chain_id."""
        ...
