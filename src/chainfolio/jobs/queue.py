"""In-process FIFO job queue.

Decouples submission from execution: enqueue() returns immediately and the
worker blocks in dequeue() until a job is available. Retried jobs go to the
tail so they never starve fresh submissions.

A dequeued job stays pending until the worker calls done() after its terminal
write, so readers can tell a live job from one orphaned by a restart.
"""

import logging
import threading
import time
from collections import deque
from typing import Optional

from chainfolio.core.exceptions import QueueFullError
from chainfolio.domain.models import JobRequest

logger = logging.getLogger(__name__)


class JobQueue:
    """Thread-safe FIFO of pending jobs, optionally bounded for new submissions."""

    def __init__(self, max_size: int = 0):
        """
        max_size: maximum number of waiting jobs accepted by enqueue().
            0 means unbounded. Re-queued retries are never rejected.
        """
        self._max_size = max_size
        self._jobs: deque[JobRequest] = deque()
        self._in_flight: set[str] = set()
        self._not_empty = threading.Condition(threading.Lock())

    def enqueue(self, job: JobRequest) -> str:
        """Append a new job. Raises QueueFullError when the queue is bounded and full."""
        with self._not_empty:
            if self._max_size and len(self._jobs) >= self._max_size:
                raise QueueFullError(self._max_size)
            self._jobs.append(job)
            self._not_empty.notify()
        logger.debug(f"Enqueued {job.request_id} (chain={job.chain_id}, depth={len(self)})")
        return job.request_id

    def requeue(self, job: JobRequest) -> None:
        """Append a retried job to the tail, ignoring the size bound."""
        with self._not_empty:
            self._in_flight.discard(job.request_id)
            self._jobs.append(job)
            self._not_empty.notify()

    def dequeue(self, timeout: Optional[float] = None) -> Optional[JobRequest]:
        """
        Remove and return the oldest job, marking it in flight.

        Blocks until one is available; returns None if timeout (seconds)
        elapses first. timeout=0 polls without waiting.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._not_empty:
            while not self._jobs:
                if deadline is None:
                    self._not_empty.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                self._not_empty.wait(remaining)
            job = self._jobs.popleft()
            self._in_flight.add(job.request_id)
            return job

    def done(self, job: JobRequest) -> None:
        """Release a dequeued job once its terminal record is persisted."""
        with self._not_empty:
            self._in_flight.discard(job.request_id)

    def is_pending(self, request_id: str) -> bool:
        """True while the job is waiting or being processed."""
        with self._not_empty:
            if request_id in self._in_flight:
                return True
            return any(job.request_id == request_id for job in self._jobs)

    def position(self, request_id: str) -> Optional[int]:
        """1-based position of a waiting job, or None if it is not waiting."""
        with self._not_empty:
            for index, job in enumerate(self._jobs, start=1):
                if job.request_id == request_id:
                    return index
        return None

    def __len__(self) -> int:
        with self._not_empty:
            return len(self._jobs)
