"""Status record and status store key encoding."""

import json
import re
from dataclasses import dataclass
from typing import Any, Optional

from chainfolio.domain.models.enums import JobStatus

KEY_PREFIX = "portfolio"

# Reported for a queued record no live process will ever finish
REQUEST_TIMED_OUT = "Request timed out"

# portfolio-{address}-{chain_id}-{request_id}; the address is fixed-width and
# the chain id is digits, so the request id may itself contain hyphens.
_KEY_RE = re.compile(
    rf"^{KEY_PREFIX}-(?P<address>0x[0-9a-f]{{40}})-(?P<chain_id>\d+)-(?P<request_id>.+)$"
)


@dataclass(frozen=True)
class StatusKey:
    """Structured composite key of a status record."""

    address: str
    chain_id: int
    request_id: str

    def encode(self) -> str:
        return f"{KEY_PREFIX}-{self.address}-{self.chain_id}-{self.request_id}"

    @classmethod
    def parse(cls, key: str) -> "StatusKey":
        """Decode a key produced by encode(). Raises ValueError if malformed."""
        match = _KEY_RE.match(key)
        if match is None:
            raise ValueError(f"Malformed status key: {key!r}")
        return cls(
            address=match.group("address"),
            chain_id=int(match.group("chain_id")),
            request_id=match.group("request_id"),
        )

    @staticmethod
    def address_prefix(address: str) -> str:
        """Prefix shared by every key of an address."""
        return f"{KEY_PREFIX}-{address}-"


@dataclass
class StatusRecord:
    """
    Durable, caller-visible outcome of a fetch request.

    data is present iff status is completed; error is present iff failed.
    timestamp is the epoch millisecond time of the last transition.
    """

    status: JobStatus
    timestamp: int
    data: Optional[dict[str, Any]] = None
    error: Optional[str] = None

    @classmethod
    def queued(cls, timestamp: int) -> "StatusRecord":
        return cls(status=JobStatus.QUEUED, timestamp=timestamp)

    @classmethod
    def completed(cls, data: dict[str, Any], timestamp: int) -> "StatusRecord":
        return cls(status=JobStatus.COMPLETED, timestamp=timestamp, data=data)

    @classmethod
    def failed(cls, error: str, timestamp: int) -> "StatusRecord":
        return cls(status=JobStatus.FAILED, timestamp=timestamp, error=error)

    def is_stale(self, now: int, timeout_ms: int) -> bool:
        """True for a queued record that has not transitioned within timeout_ms."""
        return self.status is JobStatus.QUEUED and now - self.timestamp > timeout_ms

    def to_dict(self) -> dict[str, Any]:
        """Return the persisted layout: {status, data?, error?, timestamp}."""
        payload: dict[str, Any] = {"status": self.status.value}
        if self.data is not None:
            payload["data"] = self.data
        if self.error is not None:
            payload["error"] = self.error
        payload["timestamp"] = self.timestamp
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_json(cls, raw: str) -> "StatusRecord":
        """
        Decode a stored record.

        Raises ValueError for invalid JSON, an unknown status, or a terminal
        record missing its data/error field.
        """
        try:
            payload = json.loads(raw)
        except (TypeError, json.JSONDecodeError) as e:
            raise ValueError(f"Stored record is not valid JSON: {e}") from e
        if not isinstance(payload, dict):
            raise ValueError("Stored record is not a JSON object")

        status = JobStatus(payload.get("status"))
        timestamp = payload.get("timestamp")
        if not isinstance(timestamp, int):
            raise ValueError("Stored record has no integer timestamp")

        data = payload.get("data")
        error = payload.get("error")
        if status is JobStatus.COMPLETED and not isinstance(data, dict):
            raise ValueError("Completed record has no data object")
        if status is JobStatus.FAILED and not isinstance(error, str):
            raise ValueError("Failed record has no error message")

        return cls(status=status, timestamp=timestamp, data=data, error=error)
