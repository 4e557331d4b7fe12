"""Job request model."""

from dataclasses import dataclass, field
from typing import Optional

from chainfolio.core.clock import new_request_id, now_ms
from chainfolio.domain.models.status import StatusKey, StatusRecord


@dataclass
class JobRequest:
    """
    One unit of work: fetch positions for an address on one chain.

    Owned by the job queue until the worker dequeues it. retry_count and
    pending_record are the only mutable fields, and the job is dropped once a
    terminal status is persisted.
    """

    chain_id: int
    address: str
    request_id: str = field(default_factory=new_request_id)
    enqueued_at: int = field(default_factory=now_ms)
    retry_count: int = 0
    # Terminal record whose write failed; written again before any new fetch
    pending_record: Optional[StatusRecord] = None

    @property
    def key(self) -> StatusKey:
        return StatusKey(self.address, self.chain_id, self.request_id)

    @property
    def record_key(self) -> str:
        """Encoded status store key for this job."""
        return self.key.encode()
