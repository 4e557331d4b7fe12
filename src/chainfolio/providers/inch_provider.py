"""1inch Portfolio API provider."""

import logging
from typing import Any, Optional

import httpx

from chainfolio.core.exceptions import UpstreamError, UpstreamTimeout

logger = logging.getLogger(__name__)

PROTOCOLS_DETAILS_PATH = "/portfolio/portfolio/v4/overview/protocols/details"

MALFORMED_PAYLOAD = "Malformed upstream payload"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _normalize_token(token: Any) -> dict[str, Any]:
    if not isinstance(token, dict):
        raise UpstreamError(MALFORMED_PAYLOAD)
    return {
        "address": token.get("address") or "",
        "symbol": token.get("symbol") or "",
        "name": token.get("name") or "",
        "amount": token.get("amount") if _is_number(token.get("amount")) else 0,
        "price_usd": token.get("price_usd") if _is_number(token.get("price_usd")) else 0,
        "value_usd": token.get("value_usd") if _is_number(token.get("value_usd")) else 0,
    }


def normalize_positions(chain_id: int, payload: Any) -> dict[str, Any]:
    """
    Convert a protocols/details response into the stored payload shape.

    Raises UpstreamError when the response does not carry a result list of
    positions with numeric value_usd.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("result"), list):
        raise UpstreamError(MALFORMED_PAYLOAD)

    positions = []
    for item in payload["result"]:
        if not isinstance(item, dict) or not _is_number(item.get("value_usd")):
            raise UpstreamError(MALFORMED_PAYLOAD)
        tokens = item.get("underlying_tokens") or []
        if not isinstance(tokens, list):
            raise UpstreamError(MALFORMED_PAYLOAD)
        positions.append(
            {
                "protocol": item.get("protocol") or "",
                "name": item.get("name") or item.get("protocol_name") or "",
                "contract_address": item.get("contract_address") or "",
                "value_usd": item["value_usd"],
                "underlying_tokens": [_normalize_token(t) for t in tokens],
            }
        )

    return {"chain_id": chain_id, "positions": positions}


class InchPortfolioProvider:
    """
    Fetches protocol positions from the 1inch Portfolio API.

    One HTTP request per call; retries belong to the worker.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.1inch.dev",
        timeout_seconds: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        self._timeout = timeout_seconds
        self._client = client or httpx.Client(
            base_url=base_url,
            timeout=timeout_seconds,
        )
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
        }

    def fetch(self, chain_id: int, address: str) -> dict[str, Any]:
        logger.info(f"Fetching portfolio data from 1inch (chain={chain_id}, address={address})")

        try:
            response = self._client.get(
                PROTOCOLS_DETAILS_PATH,
                params={"chain_id": chain_id, "addresses": address},
                headers=self._headers,
            )
        except httpx.TimeoutException as e:
            raise UpstreamTimeout(self._timeout) from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Upstream request failed: {type(e).__name__}") from e

        if response.status_code >= 400:
            if response.status_code == 429:
                message = "Upstream rate limit exceeded (HTTP 429)"
            else:
                message = f"Upstream returned HTTP {response.status_code}"
            raise UpstreamError(message, status=response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamError(MALFORMED_PAYLOAD) from e

        normalized = normalize_positions(chain_id, payload)
        logger.info(
            f"Fetched {len(normalized['positions'])} position(s) "
            f"(chain={chain_id}, address={address})"
        )
        return normalized

    def close(self) -> None:
        self._client.close()
