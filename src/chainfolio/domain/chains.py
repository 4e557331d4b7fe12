"""Supported chain registry."""

from dataclasses import dataclass
from typing import Iterable, Optional


@dataclass(frozen=True)
class ChainDescriptor:
    """A blockchain network the upstream provider serves."""

    id: int
    name: str


DEFAULT_CHAINS: tuple[ChainDescriptor, ...] = (
    ChainDescriptor(1, "Ethereum"),
    ChainDescriptor(56, "BSC"),
    ChainDescriptor(137, "Polygon"),
    ChainDescriptor(42161, "Arbitrum"),
    ChainDescriptor(10, "Optimism"),
    ChainDescriptor(43114, "Avalanche"),
    ChainDescriptor(8453, "Base"),
    ChainDescriptor(324, "zkSync Era"),
    ChainDescriptor(59144, "Linea"),
)


class ChainRegistry:
    """
    Static mapping of chain id -> display name.

    Submission and aggregation must share one registry so the set of
    expected chains is identical on both paths.
    """

    def __init__(self, chains: Optional[Iterable[ChainDescriptor]] = None):
        self._chains = tuple(chains) if chains is not None else DEFAULT_CHAINS
        self._by_id = {chain.id: chain for chain in self._chains}

    def list_chains(self) -> list[ChainDescriptor]:
        """Return chain descriptors in registry order."""
        return list(self._chains)

    def chain_ids(self) -> list[int]:
        return [chain.id for chain in self._chains]

    def is_supported(self, chain_id: int) -> bool:
        return chain_id in self._by_id

    def name(self, chain_id: int) -> str:
        """Return the display name, or a synthesized label for unknown chains."""
        chain = self._by_id.get(chain_id)
        return chain.name if chain else f"Chain {chain_id}"
