"""
Unit tests for RateLimitedWorker.

Tests cover:
- Success and terminal failure writes
- Retry cap and tail re-insertion
- Fail-fast on non-retryable upstream statuses
- Inter-request interval and requests-per-second ceiling
- Status write retries after a store failure
- Background thread start/stop
"""

import threading
import time

import pytest

from chainfolio.core.exceptions import UpstreamError, UpstreamTimeout
from chainfolio.domain.models import JobOutcome, JobRequest, JobStatus
from chainfolio.jobs import JobQueue, RateLimitedWorker
from chainfolio.jobs.worker import INTERNAL_FETCH_ERROR
from chainfolio.repositories.sqlalchemy import SqlAlchemyStatusStore

from tests.conftest import (
    ADDRESS,
    OTHER_ADDRESS,
    RecordingSleep,
    ScriptedProvider,
    make_payload,
    upstream_5xx,
)


def _job(chain_id: int, address: str = ADDRESS) -> JobRequest:
    return JobRequest(chain_id=chain_id, address=address)


# =============================================================================
# SINGLE ATTEMPT TESTS
# =============================================================================


class TestProcess:
    """Tests for handling one dequeued job."""

    def test_success_writes_completed_record(self, worker, provider, status_store, clock):
        """
        GIVEN a provider that succeeds for chain 1
        WHEN the worker processes a chain 1 job
        THEN a completed record with the payload is stored under the job key
        """
        payload = make_payload(1, 500.0)
        provider.script(1, payload)
        job = _job(1)

        outcome = worker.process(job)

        assert outcome == JobOutcome.COMPLETED
        record = status_store.get(job.record_key)
        assert record.status == JobStatus.COMPLETED
        assert record.data == payload
        assert record.error is None
        assert record.timestamp == clock.now

    def test_failure_under_cap_requeues_at_tail(self, worker, provider, job_queue, status_store):
        """
        GIVEN a provider that fails with HTTP 503
        WHEN the worker processes a fresh job
        THEN the job is re-queued with retry_count 1 and nothing is stored
        """
        provider.script(137, upstream_5xx())
        job = _job(137)

        outcome = worker.process(job)

        assert outcome == JobOutcome.RETRIED
        assert job.retry_count == 1
        assert len(job_queue) == 1
        assert status_store.get_raw(job.record_key) is None

    def test_failure_at_cap_writes_failed_record(self, worker, provider, job_queue, status_store):
        """
        GIVEN a job that has already been retried 3 times
        WHEN the next attempt fails
        THEN a failed record with the upstream message is stored and the job is dropped
        """
        provider.script(137, upstream_5xx())
        job = _job(137)
        job.retry_count = 3

        outcome = worker.process(job)

        assert outcome == JobOutcome.FAILED
        assert len(job_queue) == 0
        record = status_store.get(job.record_key)
        assert record.status == JobStatus.FAILED
        assert record.error == "Upstream returned HTTP 503"
        assert record.data is None

    def test_timeout_is_retryable(self, worker, provider, job_queue):
        """
        GIVEN a provider that times out
        WHEN the worker processes the job
        THEN the job is retried
        """
        provider.script(1, UpstreamTimeout(10))
        job = _job(1)

        assert worker.process(job) == JobOutcome.RETRIED
        assert len(job_queue) == 1

    def test_rate_limited_response_is_retryable(self, worker, provider):
        """
        GIVEN a provider answering HTTP 429
        WHEN the worker processes the job
        THEN the job is retried rather than failed
        """
        provider.script(1, UpstreamError("Upstream rate limit exceeded (HTTP 429)", status=429))

        assert worker.process(_job(1)) == JobOutcome.RETRIED

    @pytest.mark.parametrize("status", [400, 401, 404])
    def test_non_retryable_status_fails_fast(self, worker, provider, job_queue, status_store, status):
        """
        GIVEN a provider answering with a permanent client error
        WHEN the worker processes a fresh job
        THEN the job fails immediately without consuming retries
        """
        provider.script(1, UpstreamError(f"Upstream returned HTTP {status}", status=status))
        job = _job(1)

        outcome = worker.process(job)

        assert outcome == JobOutcome.FAILED
        assert job.retry_count == 0
        assert len(job_queue) == 0
        assert status_store.get(job.record_key).error == f"Upstream returned HTTP {status}"

    def test_unexpected_exception_uses_generic_message(self, worker, provider, status_store):
        """
        GIVEN a provider raising a non-upstream exception on the final attempt
        WHEN the worker processes the job
        THEN the stored error is generic and does not leak internals
        """
        provider.script(1, KeyError("secret internal detail"))
        job = _job(1)
        job.retry_count = 3

        worker.process(job)

        record = status_store.get(job.record_key)
        assert record.error == INTERNAL_FETCH_ERROR
        assert "secret" not in record.error

    def test_terminal_write_failure_retries_write_without_refetching(
        self, job_queue, provider, status_store, recording_sleep, clock
    ):
        """
        GIVEN a store whose first write raises
        WHEN the worker drains a single succeeding job
        THEN the job is re-queued holding its record, the write succeeds on the
        next attempt, and the provider is called only once
        """

        class FlakyStore:
            def __init__(self):
                self.failures = 1

            def put(self, key, record):
                if self.failures:
                    self.failures -= 1
                    raise RuntimeError("database is locked")
                status_store.put(key, record)

        worker = RateLimitedWorker(
            job_queue, provider, FlakyStore(),
            sleep=recording_sleep, clock=clock,
        )
        provider.script(1, make_payload(1, 5))
        job = _job(1)
        job_queue.enqueue(job)

        assert worker.run_until_idle(max_jobs=1) == 1
        assert job.pending_record is not None
        assert job.retry_count == 0
        assert job_queue.position(job.request_id) == 1
        assert status_store.get_raw(job.record_key) is None

        worker.run_until_idle()

        assert provider.calls_for(1) == 1
        assert job.pending_record is None
        assert not job_queue.is_pending(job.request_id)
        record = status_store.get(job.record_key)
        assert record.status == JobStatus.COMPLETED
        assert record.data == make_payload(1, 5)

    def test_worker_releases_job_after_terminal_write(self, worker, job_queue, status_store):
        """
        GIVEN a queued job
        WHEN the worker drains the queue
        THEN the job is no longer pending and its terminal record is stored
        """
        job = _job(56)
        job_queue.enqueue(job)

        worker.run_until_idle()

        assert not job_queue.is_pending(job.request_id)
        assert status_store.get(job.record_key).status == JobStatus.COMPLETED


# =============================================================================
# RETRY POLICY TESTS
# =============================================================================


class TestRetryPolicy:
    """Tests for the retry cap and retry ordering."""

    def test_terminal_status_after_retry_max_plus_one_calls(self, worker, provider, job_queue, status_store):
        """
        GIVEN a provider that always fails for chain 137
        WHEN the worker drains the queue
        THEN exactly retry_max + 1 = 4 calls are made and the record is failed
        """
        provider.script(137, upstream_5xx())
        job = _job(137)
        job_queue.enqueue(job)

        attempts = worker.run_until_idle()

        assert attempts == 4
        assert provider.calls_for(137) == 4
        assert status_store.get(job.record_key).status == JobStatus.FAILED

    def test_success_on_last_retry_completes(self, worker, provider, job_queue, status_store):
        """
        GIVEN a provider failing three times then succeeding
        WHEN the worker drains the queue
        THEN the record is completed after 4 calls
        """
        provider.script(1, upstream_5xx(), upstream_5xx(), upstream_5xx(), make_payload(1, 10))
        job = _job(1)
        job_queue.enqueue(job)

        worker.run_until_idle()

        assert provider.calls_for(1) == 4
        assert status_store.get(job.record_key).status == JobStatus.COMPLETED

    def test_zero_retry_max_fails_on_first_error(self, job_queue, provider, status_store, recording_sleep, clock):
        """
        GIVEN a worker configured with retry_max=0
        WHEN the only attempt fails
        THEN the record is failed after a single call
        """
        worker = RateLimitedWorker(
            job_queue, provider, status_store,
            retry_max=0, sleep=recording_sleep, clock=clock,
        )
        provider.script(1, upstream_5xx())
        job = _job(1)
        job_queue.enqueue(job)

        worker.run_until_idle()

        assert provider.calls_for(1) == 1
        assert status_store.get(job.record_key).status == JobStatus.FAILED

    def test_retried_job_runs_after_jobs_queued_before_its_first_attempt_finished(
        self, worker, provider, job_queue
    ):
        """
        GIVEN jobs A, B, C queued in order, with A failing once
        WHEN the worker drains the queue
        THEN the execution order is A, B, C, A
        """
        provider.script(1, upstream_5xx(), make_payload(1))
        job_queue.enqueue(_job(1))
        job_queue.enqueue(_job(137))
        job_queue.enqueue(_job(56))

        worker.run_until_idle()

        assert [chain_id for chain_id, _ in provider.calls] == [1, 137, 56, 1]

    def test_retries_do_not_starve_fresh_submissions(self, worker, provider, job_queue):
        """
        GIVEN a job that always fails, and a second job submitted after its first attempt
        WHEN the worker drains the queue
        THEN the second job waits behind only the retry already queued
        """
        provider.script(137, upstream_5xx())
        job_queue.enqueue(_job(137))
        worker.run_until_idle(max_jobs=1)
        job_queue.enqueue(_job(1, OTHER_ADDRESS))

        worker.run_until_idle()

        assert provider.calls == [
            (137, ADDRESS),
            (137, ADDRESS),
            (1, OTHER_ADDRESS),
            (137, ADDRESS),
            (137, ADDRESS),
        ]


# =============================================================================
# RATE LIMIT TESTS
# =============================================================================


class TestRateLimit:
    """Tests for the inter-request interval."""

    def test_waits_interval_after_every_attempt(self, worker, provider, job_queue, recording_sleep):
        """
        GIVEN one succeeding job and one job failing twice then succeeding
        WHEN the worker drains the queue
        THEN it sleeps 1s after each of the 4 attempts, failures included
        """
        provider.script(137, upstream_5xx(), upstream_5xx(), make_payload(137))
        job_queue.enqueue(_job(1))
        job_queue.enqueue(_job(137))

        worker.run_until_idle()

        assert recording_sleep.calls == [1.0, 1.0, 1.0, 1.0]

    @pytest.mark.parametrize("rps", [1, 2, 10])
    def test_at_most_n_calls_in_any_one_second_window(self, rps, job_queue, status_store, clock):
        """
        GIVEN a backlog of 30 jobs, a third of them failing, at N requests/second
        WHEN the worker drains the queue
        THEN no 1000ms window contains more than N provider calls
        """
        provider = ScriptedProvider(clock=clock)
        provider.script(137, upstream_5xx())
        worker = RateLimitedWorker(
            job_queue, provider, status_store,
            rate_limit_rps=rps, retry_max=3,
            sleep=RecordingSleep(clock), clock=clock,
        )
        for i in range(30):
            job_queue.enqueue(_job([1, 137, 56][i % 3]))

        worker.run_until_idle()

        times = provider.call_times
        assert len(times) == 20 + 10 * 4
        for start in times:
            in_window = [t for t in times if start <= t < start + 1000]
            assert len(in_window) <= rps

    def test_interval_is_inverse_of_rate(self, job_queue, provider, status_store):
        """
        GIVEN a rate limit of 10 requests/second
        WHEN the worker is created
        THEN the interval is 100ms
        """
        worker = RateLimitedWorker(job_queue, provider, status_store, rate_limit_rps=10)

        assert worker.interval_seconds == pytest.approx(0.1)

    def test_rejects_non_positive_rate(self, job_queue, provider, status_store):
        """
        GIVEN a rate limit of 0
        WHEN the worker is created
        THEN ValueError is raised
        """
        with pytest.raises(ValueError):
            RateLimitedWorker(job_queue, provider, status_store, rate_limit_rps=0)


# =============================================================================
# BACKGROUND THREAD TESTS
# =============================================================================


class TestBackgroundLoop:
    """Tests for the consumer thread."""

    def test_thread_processes_queued_job_and_stops(self, file_session_factory):
        """
        GIVEN a started worker with a fast rate limit
        WHEN a job is enqueued
        THEN it is completed by the background thread, and stop() ends the thread
        """
        status_store = SqlAlchemyStatusStore(file_session_factory)
        job_queue = JobQueue()
        done = threading.Event()

        class SignallingProvider:
            def fetch(self, chain_id, address):
                done.set()
                return make_payload(chain_id, 1)

        worker = RateLimitedWorker(job_queue, SignallingProvider(), status_store, rate_limit_rps=100)
        worker.start()
        try:
            job = _job(1)
            job_queue.enqueue(job)
            assert done.wait(timeout=5)

            deadline = time.monotonic() + 5
            while status_store.get_raw(job.record_key) is None and time.monotonic() < deadline:
                time.sleep(0.01)
            assert status_store.get(job.record_key).status == JobStatus.COMPLETED
        finally:
            worker.stop()

        assert not worker.is_running

    def test_store_failure_does_not_kill_loop(self, provider):
        """
        GIVEN a store whose first write raises
        WHEN two jobs are processed by the background thread
        THEN both jobs end up written, the first one after its failed write,
        and each job reaches the provider only once
        """
        job_queue = JobQueue()
        first, second = _job(1), _job(137)
        both_written = threading.Event()

        class FlakyStore:
            def __init__(self):
                self.puts = 0
                self.records = {}

            def put(self, key, record):
                self.puts += 1
                if self.puts == 1:
                    raise RuntimeError("database is locked")
                self.records[key] = record
                if {first.record_key, second.record_key} <= self.records.keys():
                    both_written.set()

        store = FlakyStore()
        worker = RateLimitedWorker(job_queue, provider, store, rate_limit_rps=100)
        worker.start()
        try:
            job_queue.enqueue(first)
            job_queue.enqueue(second)
            assert both_written.wait(timeout=5)
            assert worker.is_running
        finally:
            worker.stop()

        assert store.records[first.record_key].status == JobStatus.COMPLETED
        assert store.records[second.record_key].status == JobStatus.COMPLETED
        assert provider.calls_for(1) == 1
        assert provider.calls_for(137) == 1
        assert not job_queue.is_pending(first.request_id)
