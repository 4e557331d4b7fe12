"""
Pytest configuration and fixtures for the portfolio job pipeline tests.

This module provides:
- In-memory SQLite status store fixtures
- A fake clock and a recording sleep for rate-limit tests
- Scripted upstream providers
- Queue, worker and service fixtures
- A FastAPI test client wired to a test application context
"""

from decimal import Decimal
from typing import Any, Callable, Optional, Union

import pytest
from sqlalchemy import create_engine, StaticPool
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from chainfolio.main import app
from chainfolio.api.deps import get_context
from chainfolio.app_context import AppContext, set_app_context
from chainfolio.config.settings import Settings, reset_settings
from chainfolio.core.exceptions import UpstreamError
from chainfolio.domain.chains import ChainDescriptor, ChainRegistry
from chainfolio.domain.models import JobRequest, StatusRecord
from chainfolio.jobs import JobQueue, RateLimitedWorker
from chainfolio.repositories.sqlalchemy.database import Base
# Import ORM models to register them with Base before creating tables
from chainfolio.repositories.sqlalchemy import orm_models  # noqa: F401
from chainfolio.repositories.sqlalchemy import SqlAlchemyStatusStore
from chainfolio.services import AggregationService, SubmissionService


ADDRESS = "0x" + "aa" * 20
OTHER_ADDRESS = "0x" + "bb" * 20

# Fixed "now" for deterministic tests: 2024-06-15T14:30:00Z
FIXED_NOW_MS = 1718461800000


# =============================================================================
# TIME HELPERS
# =============================================================================


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, start_ms: int = FIXED_NOW_MS):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(round(seconds * 1000))


class RecordingSleep:
    """Sleep replacement that records durations and advances a FakeClock."""

    def __init__(self, clock: FakeClock):
        self._clock = clock
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self._clock.advance(seconds)


@pytest.fixture
def clock() -> FakeClock:
    """Fake clock starting at FIXED_NOW_MS."""
    return FakeClock()


@pytest.fixture
def recording_sleep(clock) -> RecordingSleep:
    """Recording sleep bound to the fake clock."""
    return RecordingSleep(clock)


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture(scope="function")
def test_engine():
    """Create test database engine with shared in-memory SQLite."""
    reset_settings()

    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory(test_engine) -> sessionmaker:
    """Session factory bound to the test engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture
def status_store(session_factory) -> SqlAlchemyStatusStore:
    """Provide test StatusStore."""
    return SqlAlchemyStatusStore(session_factory)


@pytest.fixture
def file_session_factory(tmp_path) -> sessionmaker:
    """
    Session factory on a SQLite file with a connection per thread.

    Use for tests where the background worker thread and the test thread
    touch the store at the same time.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'status.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


# =============================================================================
# PROVIDER FIXTURES
# =============================================================================


def make_payload(chain_id: int, *values: Union[float, str]) -> dict[str, Any]:
    """Normalized payload with one position per value."""
    return {
        "chain_id": chain_id,
        "positions": [
            {
                "protocol": "uniswapv3",
                "name": f"Position {i}",
                "contract_address": "0x" + f"{i:040x}",
                "value_usd": float(value),
                "underlying_tokens": [
                    {
                        "address": "0x" + "cc" * 20,
                        "symbol": "USDC",
                        "name": "USD Coin",
                        "amount": float(value),
                        "price_usd": 1.0,
                        "value_usd": float(value),
                    }
                ],
            }
            for i, value in enumerate(values)
        ],
    }


Outcome = Union[dict, Exception]


class ScriptedProvider:
    """
    Provider that replays scripted outcomes per chain.

    Each chain has a list of outcomes consumed in order; the last outcome
    repeats once the list is exhausted. Chains without a script return an
    empty payload. Every call is recorded with the clock time it was made.
    """

    def __init__(self, clock: Optional[Callable[[], int]] = None):
        self._scripts: dict[int, list[Outcome]] = {}
        self._clock = clock
        self.calls: list[tuple[int, str]] = []
        self.call_times: list[int] = []

    def script(self, chain_id: int, *outcomes: Outcome) -> "ScriptedProvider":
        self._scripts[chain_id] = list(outcomes)
        return self

    def calls_for(self, chain_id: int) -> int:
        return sum(1 for cid, _ in self.calls if cid == chain_id)

    def fetch(self, chain_id: int, address: str) -> dict[str, Any]:
        self.calls.append((chain_id, address))
        if self._clock is not None:
            self.call_times.append(self._clock())

        outcomes = self._scripts.get(chain_id)
        if not outcomes:
            return make_payload(chain_id)
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def upstream_5xx() -> UpstreamError:
    return UpstreamError("Upstream returned HTTP 503", status=503)


@pytest.fixture
def provider(clock) -> ScriptedProvider:
    """Scripted provider recording call times on the fake clock."""
    return ScriptedProvider(clock=clock)


# =============================================================================
# PIPELINE FIXTURES
# =============================================================================


@pytest.fixture
def registry() -> ChainRegistry:
    """Three-chain registry used across pipeline tests."""
    return ChainRegistry(
        [
            ChainDescriptor(1, "Ethereum"),
            ChainDescriptor(137, "Polygon"),
            ChainDescriptor(56, "BSC"),
        ]
    )


@pytest.fixture
def job_queue() -> JobQueue:
    """Unbounded job queue."""
    return JobQueue()


@pytest.fixture
def worker(job_queue, provider, status_store, clock, recording_sleep) -> RateLimitedWorker:
    """Worker at 1 request/second with the default retry cap."""
    return RateLimitedWorker(
        job_queue=job_queue,
        provider=provider,
        status_store=status_store,
        rate_limit_rps=1.0,
        retry_max=3,
        non_retryable_status_codes=(400, 401, 403, 404, 422),
        sleep=recording_sleep,
        clock=clock,
    )


@pytest.fixture
def submission_service(status_store, job_queue, registry, clock) -> SubmissionService:
    """Provide test SubmissionService."""
    return SubmissionService(
        status_store=status_store,
        job_queue=job_queue,
        registry=registry,
        queued_timeout_seconds=900,
        clock=clock,
    )


@pytest.fixture
def aggregation_service(status_store, registry, job_queue, clock) -> AggregationService:
    """Provide test AggregationService."""
    return AggregationService(
        status_store=status_store,
        registry=registry,
        job_queue=job_queue,
        queued_timeout_seconds=900,
        clock=clock,
    )


# =============================================================================
# FACTORY FIXTURES
# =============================================================================


@pytest.fixture
def record_factory(status_store) -> Callable[..., str]:
    """Factory writing a status record directly to the store. Returns the key."""

    def _put(
        chain_id: int,
        record: StatusRecord,
        address: str = ADDRESS,
        request_id: Optional[str] = None,
    ) -> str:
        job = JobRequest(chain_id=chain_id, address=address)
        if request_id is not None:
            job.request_id = request_id
        status_store.put(job.record_key, record)
        return job.record_key

    return _put


# =============================================================================
# API TEST CLIENT FIXTURE
# =============================================================================


@pytest.fixture
def app_context(session_factory, provider, registry) -> AppContext:
    """Application context on the test database with the worker disabled."""
    settings = Settings(
        rate_limit_rps=1000,
        retry_max=3,
        worker_enabled=False,
        upstream_provider="stub",
    )
    context = AppContext(
        settings=settings,
        session_factory=session_factory,
        provider=provider,
        registry=registry,
    )
    context.initialize()
    return context


@pytest.fixture
def client(app_context) -> TestClient:
    """Provide FastAPI test client with the test application context."""
    set_app_context(app_context)
    app.dependency_overrides[get_context] = lambda: app_context
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    set_app_context(None)


# =============================================================================
# HELPER FUNCTIONS (exported for use in tests)
# =============================================================================


def total_of(*values: str) -> Decimal:
    """Sum decimal strings."""
    return sum((Decimal(v) for v in values), Decimal("0"))
