"""Stub portfolio provider for offline/testing use."""

import random
from typing import Any


# Deterministic fake protocols offered on every chain
_STUB_PROTOCOLS: list[tuple[str, str, str]] = [
    ("uniswapv3", "Uniswap V3 USDC/WETH", "USDC"),
    ("aave_v3", "Aave V3 Supply", "WETH"),
    ("curve", "Curve 3pool", "DAI"),
]


class StubPortfolioProvider:
    """
    Stub provider with deterministic fake positions for offline operation.

    The same (chain, address, seed) always yields the same positions.
    """

    def __init__(self, seed: int = 42):
        self._seed = seed

    def fetch(self, chain_id: int, address: str) -> dict[str, Any]:
        rng = random.Random(f"{self._seed}:{chain_id}:{address.lower()}")
        count = rng.randint(0, len(_STUB_PROTOCOLS))

        positions = []
        for protocol, name, symbol in _STUB_PROTOCOLS[:count]:
            amount = round(rng.uniform(0.1, 50), 4)
            price = round(rng.uniform(1, 3000), 2)
            value = round(amount * price, 2)
            positions.append(
                {
                    "protocol": protocol,
                    "name": name,
                    "contract_address": "0x" + f"{rng.getrandbits(160):040x}",
                    "value_usd": value,
                    "underlying_tokens": [
                        {
                            "address": "0x" + f"{rng.getrandbits(160):040x}",
                            "symbol": symbol,
                            "name": symbol,
                            "amount": amount,
                            "price_usd": price,
                            "value_usd": value,
                        }
                    ],
                }
            )

        return {"chain_id": chain_id, "positions": positions}
