"""Submission and status lookup for portfolio fetch requests."""

import logging
from typing import Callable

from chainfolio.core.clock import now_ms
from chainfolio.core.exceptions import NotFoundError, QueueFullError, ValidationError
from chainfolio.domain.address import normalize_address
from chainfolio.domain.chains import ChainRegistry
from chainfolio.domain.models import (
    REQUEST_TIMED_OUT,
    JobRequest,
    JobStatus,
    StatusKey,
    StatusRecord,
)
from chainfolio.domain.views import StatusView
from chainfolio.jobs.queue import JobQueue
from chainfolio.repositories.protocols import StatusStore

logger = logging.getLogger(__name__)

INTERNAL_STATUS_ERROR = "Internal error while reading request status"


class SubmissionService:
    """
    Accepts fetch requests and answers status polls.

    Submission validates synchronously, writes a queued record and hands the
    job to the queue. It never waits for the job to run.
    """

    def __init__(
        self,
        status_store: StatusStore,
        job_queue: JobQueue,
        registry: ChainRegistry,
        queued_timeout_seconds: int = 3600,
        clock: Callable[[], int] = now_ms,
    ):
        self._store = status_store
        self._queue = job_queue
        self._registry = registry
        self._queued_timeout_ms = queued_timeout_seconds * 1000
        self._clock = clock

    def submit_one(self, chain_id: int, address: str) -> str:
        """Queue a fetch for one chain. Returns the request id."""
        address = normalize_address(address)
        if isinstance(chain_id, bool) or not isinstance(chain_id, int):
            raise ValidationError(f"Invalid chain id: {chain_id!r}")
        if not self._registry.is_supported(chain_id):
            raise ValidationError(f"Unsupported chain: {chain_id}")

        job = JobRequest(chain_id=chain_id, address=address, enqueued_at=self._clock())
        self._store.put(job.record_key, StatusRecord.queued(job.enqueued_at))
        try:
            self._queue.enqueue(job)
        except QueueFullError as e:
            # The queued record must not outlive the rejected job
            self._store.put(job.record_key, StatusRecord.failed(e.message, self._clock()))
            raise

        logger.info(
            f"Portfolio request enqueued (request_id={job.request_id}, "
            f"chain={chain_id}, address={address})"
        )
        return job.request_id

    def submit_all(self, address: str) -> list[str]:
        """Queue a fetch for every registry chain, in registry order."""
        address = normalize_address(address)
        logger.info(f"Starting multichain portfolio request for {address}")
        return [self.submit_one(chain_id, address) for chain_id in self._registry.chain_ids()]

    def get_status(self, request_id: str) -> StatusView:
        """Return the current status of a request. Raises NotFoundError if unknown."""
        key = self._store.find_key_by_request_id(request_id)
        if key is None:
            raise NotFoundError("Request", request_id)

        parsed = StatusKey.parse(key)
        # Checked before the read: a job released by the worker has already
        # written its terminal record
        pending = self._queue.is_pending(request_id)
        try:
            record = self._store.get(key)
        except ValueError as e:
            logger.error(f"Unreadable status record {key}: {e}")
            return StatusView(
                request_id=request_id,
                chain_id=parsed.chain_id,
                address=parsed.address,
                status=JobStatus.FAILED,
                timestamp=self._clock(),
                error=INTERNAL_STATUS_ERROR,
            )

        view = StatusView(
            request_id=request_id,
            chain_id=parsed.chain_id,
            address=parsed.address,
            status=record.status,
            timestamp=record.timestamp,
            data=record.data,
            error=record.error,
        )
        if record.status is JobStatus.QUEUED:
            if pending:
                view.position = self._queue.position(request_id)
            elif record.is_stale(self._clock(), self._queued_timeout_ms):
                view.status = JobStatus.FAILED
                view.error = REQUEST_TIMED_OUT
        return view

    def recover_pending(self) -> int:
        """
        Re-enqueue queued records left over from a previous process.

        Records older than the queued timeout are left alone; reads report
        them as timed out. Returns the number of jobs re-enqueued.
        """
        now = self._clock()
        recovered = 0
        for key in self._store.list_by_status(JobStatus.QUEUED):
            try:
                parsed = StatusKey.parse(key)
                record = self._store.get(key)
            except (ValueError, NotFoundError):
                logger.warning(f"Skipping unreadable queued record {key}")
                continue
            if record.is_stale(now, self._queued_timeout_ms):
                continue
            if self._queue.is_pending(parsed.request_id):
                continue
            self._queue.requeue(
                JobRequest(
                    chain_id=parsed.chain_id,
                    address=parsed.address,
                    request_id=parsed.request_id,
                    enqueued_at=record.timestamp,
                )
            )
            recovered += 1

        if recovered:
            logger.info(f"Recovered {recovered} pending request(s) from the status store")
        return recovered
