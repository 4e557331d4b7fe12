"""Rate-limited worker draining the job queue.

A single consumer thread is the only caller of the upstream provider. After
every handled job (success, retry or terminal failure) it waits a fixed
interval of 1 / rate_limit_rps seconds, which is what enforces the global
request rate regardless of how many jobs are queued.
"""

import logging
import threading
from typing import Callable, Iterable, Optional

from chainfolio.core.clock import now_ms
from chainfolio.core.exceptions import UpstreamError
from chainfolio.domain.models import JobOutcome, JobRequest, JobStatus, StatusRecord
from chainfolio.jobs.queue import JobQueue
from chainfolio.providers.portfolio_provider import PortfolioProvider
from chainfolio.repositories.protocols import StatusStore

logger = logging.getLogger(__name__)

INTERNAL_FETCH_ERROR = "Internal error while fetching portfolio data"

# How long the loop blocks on an empty queue before re-checking for shutdown
_POLL_SECONDS = 1.0


class RateLimitedWorker:
    """Consumes jobs one at a time, applying retry policy and persisting outcomes."""

    def __init__(
        self,
        job_queue: JobQueue,
        provider: PortfolioProvider,
        status_store: StatusStore,
        rate_limit_rps: float = 1.0,
        retry_max: int = 3,
        non_retryable_status_codes: Iterable[int] = (),
        sleep: Optional[Callable[[float], object]] = None,
        clock: Callable[[], int] = now_ms,
    ):
        """
        sleep: callable(seconds) used for the inter-request interval.
            Defaults to waiting on the stop event so stop() interrupts it.
        clock: returns epoch milliseconds for record timestamps.
        """
        if rate_limit_rps <= 0:
            raise ValueError("rate_limit_rps must be positive")
        self._queue = job_queue
        self._provider = provider
        self._store = status_store
        self._interval = 1.0 / rate_limit_rps
        self._retry_max = retry_max
        self._non_retryable = frozenset(non_retryable_status_codes)
        self._stop_event = threading.Event()
        self._sleep = sleep or self._stop_event.wait
        self._clock = clock
        self._thread: Optional[threading.Thread] = None

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the consumer thread."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._worker_loop,
            name="chainfolio-worker",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"Worker started (interval={self._interval:.3f}s, retry_max={self._retry_max})")

    def stop(self, timeout: float = 5.0) -> None:
        """Signal the loop to exit and wait for the in-flight job to finish."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Worker stopped")

    def run_until_idle(self, max_jobs: Optional[int] = None) -> int:
        """
        Drain the queue on the calling thread, honoring the rate interval.

        Returns the number of attempts made. Retries re-queued along the way
        are processed too, so every job ends in a terminal state unless
        max_jobs stops the drain first.
        """
        attempts = 0
        while max_jobs is None or attempts < max_jobs:
            job = self._queue.dequeue(timeout=0)
            if job is None:
                break
            self.process(job)
            attempts += 1
            self._sleep(self._interval)
        return attempts

    def _worker_loop(self) -> None:
        """Process jobs one at a time until stopped."""
        while not self._stop_event.is_set():
            job = self._queue.dequeue(timeout=_POLL_SECONDS)
            if job is None:
                continue
            try:
                self.process(job)
            except Exception:
                # Store failures are handled in _persist; this only keeps the consumer alive
                logger.exception(f"Unexpected error processing {job.request_id}")
                self._queue.done(job)
            self._sleep(self._interval)

    def process(self, job: JobRequest) -> JobOutcome:
        """Run one fetch attempt for job and apply the retry policy."""
        if job.pending_record is not None:
            logger.info(f"Retrying status write for request {job.request_id}")
            return self._persist(job, job.pending_record)

        logger.info(
            f"Processing request {job.request_id} "
            f"(chain={job.chain_id}, address={job.address}, attempt={job.retry_count + 1})"
        )

        try:
            data = self._provider.fetch(job.chain_id, job.address)
        except UpstreamError as e:
            if e.status is not None and e.status in self._non_retryable:
                return self._fail(job, e.message)
            return self._retry_or_fail(job, e.message)
        except Exception:
            logger.exception(f"Unexpected provider error for {job.request_id}")
            return self._retry_or_fail(job, INTERNAL_FETCH_ERROR)

        outcome = self._persist(job, StatusRecord.completed(data, self._clock()))
        if outcome is JobOutcome.COMPLETED:
            logger.info(f"Completed request {job.request_id} (chain={job.chain_id})")
        return outcome

    def _retry_or_fail(self, job: JobRequest, message: str) -> JobOutcome:
        if job.retry_count < self._retry_max:
            job.retry_count += 1
            self._queue.requeue(job)
            logger.warning(
                f"Retrying request {job.request_id} "
                f"({job.retry_count}/{self._retry_max}): {message}"
            )
            return JobOutcome.RETRIED
        return self._fail(job, message)

    def _fail(self, job: JobRequest, message: str) -> JobOutcome:
        outcome = self._persist(job, StatusRecord.failed(message, self._clock()))
        if outcome is JobOutcome.FAILED:
            logger.error(
                f"Request {job.request_id} failed after {job.retry_count + 1} attempt(s) "
                f"(chain={job.chain_id}, address={job.address}): {message}"
            )
        return outcome

    def _persist(self, job: JobRequest, record: StatusRecord) -> JobOutcome:
        """
        Write the terminal record and release the job.

        A failed write keeps the outcome on the job and re-queues it, so the
        write is attempted again without another upstream call.
        """
        try:
            self._store.put(job.record_key, record)
        except Exception:
            logger.exception(
                f"Failed to persist {record.status.value} status for {job.request_id}, "
                f"will retry the write"
            )
            job.pending_record = record
            self._queue.requeue(job)
            return JobOutcome.RETRIED

        job.pending_record = None
        self._queue.done(job)
        if record.status is JobStatus.COMPLETED:
            return JobOutcome.COMPLETED
        return JobOutcome.FAILED
