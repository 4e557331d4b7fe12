"""Job pipeline: queue and rate-limited worker."""

from chainfolio.jobs.queue import JobQueue
from chainfolio.jobs.worker import RateLimitedWorker

__all__ = [
    "JobQueue",
    "RateLimitedWorker",
]
