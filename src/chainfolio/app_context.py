"""Application context owning the pipeline's long-lived components.

Holds the validated settings together with every handle the pipeline needs
(status store, job queue, provider, worker, services). The FastAPI layer and
tooling reach the core only through this object.
"""

import logging
from typing import Optional

from sqlalchemy.orm import sessionmaker

from chainfolio.config.settings import Settings, get_settings
from chainfolio.domain.chains import ChainRegistry
from chainfolio.jobs import JobQueue, RateLimitedWorker
from chainfolio.providers import (
    InchPortfolioProvider,
    PortfolioProvider,
    StubPortfolioProvider,
)
from chainfolio.repositories.sqlalchemy import SqlAlchemyStatusStore
from chainfolio.repositories.sqlalchemy import database
from chainfolio.services import AggregationService, SubmissionService

logger = logging.getLogger(__name__)


def build_provider(settings: Settings) -> PortfolioProvider:
    """Create the upstream provider selected by settings."""
    if settings.resolve_provider() == "inch":
        if not settings.inch_api_key:
            raise ValueError("CHAINFOLIO_INCH_API_KEY is required for the inch provider")
        return InchPortfolioProvider(
            api_key=settings.inch_api_key,
            base_url=settings.upstream_base_url,
            timeout_seconds=settings.fetch_timeout_seconds,
        )
    logger.warning("No upstream API key configured, using the stub portfolio provider")
    return StubPortfolioProvider()


class AppContext:
    """
    Application context providing in-process access to the pipeline.

    Components are built eagerly by initialize(); tests can inject their own
    session factory, provider or registry.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session_factory: Optional[sessionmaker] = None,
        provider: Optional[PortfolioProvider] = None,
        registry: Optional[ChainRegistry] = None,
    ):
        self.settings = settings or get_settings()
        self._session_factory = session_factory
        self._provider = provider
        self.registry = registry or ChainRegistry()
        self._initialized = False
        self._owns_database = False
        self._owns_provider = False

        self.status_store: Optional[SqlAlchemyStatusStore] = None
        self.job_queue: Optional[JobQueue] = None
        self.worker: Optional[RateLimitedWorker] = None
        self.submission: Optional[SubmissionService] = None
        self.aggregation: Optional[AggregationService] = None

    def initialize(self) -> None:
        """Create the database schema and wire all components."""
        if self._initialized:
            return
        settings = self.settings

        if self._session_factory is None:
            self._owns_database = True
            database.init_db_with_url(settings.get_database_url())
            self._session_factory = database.get_session_factory()
        if self._provider is None:
            self._owns_provider = True
            self._provider = build_provider(settings)

        self.status_store = SqlAlchemyStatusStore(self._session_factory)
        self.job_queue = JobQueue(max_size=settings.queue_max_size)
        self.worker = RateLimitedWorker(
            job_queue=self.job_queue,
            provider=self._provider,
            status_store=self.status_store,
            rate_limit_rps=settings.rate_limit_rps,
            retry_max=settings.retry_max,
            non_retryable_status_codes=settings.non_retryable_status_codes,
        )
        self.submission = SubmissionService(
            status_store=self.status_store,
            job_queue=self.job_queue,
            registry=self.registry,
            queued_timeout_seconds=settings.queued_timeout_seconds,
        )
        self.aggregation = AggregationService(
            status_store=self.status_store,
            registry=self.registry,
            job_queue=self.job_queue,
            queued_timeout_seconds=settings.queued_timeout_seconds,
        )
        self._initialized = True

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def provider(self) -> Optional[PortfolioProvider]:
        return self._provider

    def start(self) -> None:
        """Initialize, recover pending jobs from the store and start the worker."""
        self.initialize()
        if not self.settings.worker_enabled:
            logger.info("Worker disabled, jobs will only be queued")
            return
        self.submission.recover_pending()
        self.worker.start()

    def close(self) -> None:
        """Stop the worker and release resources."""
        if self.worker:
            self.worker.stop()
        if self._owns_provider:
            if isinstance(self._provider, InchPortfolioProvider):
                self._provider.close()
            self._provider = None
        if self._owns_database:
            database.reset_database()
            self._session_factory = None
        self._initialized = False


# Global application context (singleton for the API process)
_app_context: Optional[AppContext] = None


def get_app_context() -> AppContext:
    """Get or create the global application context."""
    global _app_context
    if _app_context is None:
        _app_context = AppContext()
    return _app_context


def set_app_context(context: Optional[AppContext]) -> None:
    """Set (or clear) the global application context."""
    global _app_context
    _app_context = context
