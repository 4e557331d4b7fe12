"""Aggregation of per-chain status records into one portfolio view."""

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Callable, Optional

from chainfolio.core.clock import now_ms
from chainfolio.domain.address import normalize_address
from chainfolio.domain.chains import ChainRegistry
from chainfolio.domain.models import REQUEST_TIMED_OUT, ChainStatus, JobStatus, StatusKey
from chainfolio.domain.views import AggregatedPortfolio, ChainSummary, Position
from chainfolio.jobs.queue import JobQueue
from chainfolio.repositories.protocols import StatusStore

logger = logging.getLogger(__name__)

INTERNAL_AGGREGATION_ERROR = "Internal error while aggregating data"


class AggregationService:
    """
    Merges the latest record of every registry chain for an address.

    Reads the status store, so the result reflects whatever has been persisted
    at scan time. The job queue, when given, only decides whether an old
    queued record still belongs to a live job. A failure on one chain is
    reported on that chain and never aborts the others.
    """

    def __init__(
        self,
        status_store: StatusStore,
        registry: ChainRegistry,
        job_queue: Optional[JobQueue] = None,
        queued_timeout_seconds: int = 3600,
        clock: Callable[[], int] = now_ms,
    ):
        self._store = status_store
        self._registry = registry
        self._queue = job_queue
        self._queued_timeout_ms = queued_timeout_seconds * 1000
        self._clock = clock

    def aggregate(self, address: str) -> AggregatedPortfolio:
        """
        Build the aggregated portfolio of address across registry chains.

        For each chain the lexicographically greatest key wins. Request ids
        are time-ordered, so this is the most recent submission; ids minted by
        another generator carry no such guarantee.
        """
        address = normalize_address(address)
        now = self._clock()
        result = AggregatedPortfolio(address=address, timestamp=now)

        try:
            latest = self._latest_keys(address)
        except Exception:
            logger.exception(f"Could not list status records for {address}")
            latest = None

        for chain in self._registry.list_chains():
            if latest is None:
                result.chains.append(
                    ChainSummary(
                        id=chain.id,
                        name=chain.name,
                        status=ChainStatus.FAILED,
                        error=INTERNAL_AGGREGATION_ERROR,
                    )
                )
                continue

            key = latest.get(chain.id)
            if key is None:
                result.chains.append(
                    ChainSummary(id=chain.id, name=chain.name, status=ChainStatus.NOT_FOUND)
                )
                continue

            try:
                summary, positions = self._summarize(chain.id, chain.name, key, now)
            except Exception as e:
                logger.error(
                    f"Error aggregating chain data (chain={chain.id}, key={key}): "
                    f"{type(e).__name__}: {e}"
                )
                summary = ChainSummary(
                    id=chain.id,
                    name=chain.name,
                    status=ChainStatus.FAILED,
                    error=INTERNAL_AGGREGATION_ERROR,
                )
                positions = []

            result.chains.append(summary)
            if summary.status is ChainStatus.COMPLETED:
                result.positions.extend(positions)
                result.total_value_usd += summary.value_usd or Decimal("0")

        return result

    def _latest_keys(self, address: str) -> dict[int, str]:
        """Map chain id -> greatest key among the address's records."""
        grouped: dict[int, list[str]] = defaultdict(list)
        for key in self._store.list_keys(StatusKey.address_prefix(address)):
            try:
                parsed = StatusKey.parse(key)
            except ValueError:
                logger.warning(f"Ignoring malformed status key {key!r}")
                continue
            grouped[parsed.chain_id].append(key)
        return {chain_id: max(keys) for chain_id, keys in grouped.items()}

    def _summarize(
        self,
        chain_id: int,
        chain_name: str,
        key: str,
        now: int,
    ) -> tuple[ChainSummary, list[Position]]:
        pending = self._queue is not None and self._queue.is_pending(
            StatusKey.parse(key).request_id
        )
        record = self._store.get(key)

        if record.status is JobStatus.QUEUED:
            if not pending and record.is_stale(now, self._queued_timeout_ms):
                return (
                    ChainSummary(
                        id=chain_id,
                        name=chain_name,
                        status=ChainStatus.FAILED,
                        error=REQUEST_TIMED_OUT,
                        timestamp=record.timestamp,
                    ),
                    [],
                )
            return (
                ChainSummary(
                    id=chain_id,
                    name=chain_name,
                    status=ChainStatus.QUEUED,
                    timestamp=record.timestamp,
                ),
                [],
            )

        if record.status is JobStatus.FAILED:
            return (
                ChainSummary(
                    id=chain_id,
                    name=chain_name,
                    status=ChainStatus.FAILED,
                    error=record.error,
                    timestamp=record.timestamp,
                ),
                [],
            )

        positions = [Position.from_dict(chain_id, p) for p in record.data["positions"]]
        chain_value = sum((p.value_usd for p in positions), Decimal("0"))
        return (
            ChainSummary(
                id=chain_id,
                name=chain_name,
                status=ChainStatus.COMPLETED,
                value_usd=chain_value,
                timestamp=record.timestamp,
            ),
            positions,
        )
