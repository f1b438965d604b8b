"""
Pipeline service - runs feed polling and ledger reconciliation together.

Wires the components of the ingestion-to-anchoring pipeline:

    FeedPoller -> normalizer -> ChangeDetector -> AnchoringGate -> storage
    ReconciliationSweeper -> AnchoringGate -> storage

All pollers and the sweeper share one AnchoringGate, so ledger writes are
serialized process-wide.

Features:
- Concurrent per-source polling with staggered start
- Periodic reconciliation of unanchored records
- Graceful shutdown (in-flight ledger writes are allowed to finish)
"""

import asyncio
from typing import Any

import structlog

from headline_anchor.anchoring.config import AnchoringConfig
from headline_anchor.anchoring.gate import AnchoringGate
from headline_anchor.anchoring.ledger import HTTPLedgerClient, LedgerClient, MockLedgerClient
from headline_anchor.anchoring.sweeper import ReconciliationSweeper
from headline_anchor.ingestion.config import FeedConfig
from headline_anchor.ingestion.feed_client import FeedClient
from headline_anchor.ingestion.poller import FeedPoller
from headline_anchor.sources.config import SourcesConfig
from headline_anchor.sources.service import SourcesService
from headline_anchor.storage.database import Database
from headline_anchor.tracking.detector import ChangeDetector
from headline_anchor.tracking.repository import TrackingRepository

logger = structlog.get_logger(__name__)


def create_ledger_client(
    config: AnchoringConfig, use_mock: bool = False
) -> LedgerClient:
    """Create the ledger client from configuration."""
    if use_mock:
        logger.warning("Using in-memory mock ledger")
        return MockLedgerClient()
    if not config.ledger_configured:
        raise ValueError(
            "No ledger configured: set ANCHOR_LEDGER_URL or run with the mock ledger"
        )
    return HTTPLedgerClient(config)


class PipelineService:
    """
    Service that runs the ingestion-to-anchoring pipeline.

    Usage:
        service = PipelineService()
        await service.start()  # Runs until stopped
    """

    def __init__(
        self,
        database: Database | None = None,
        ledger: LedgerClient | None = None,
        feed_client: FeedClient | None = None,
        feed_config: FeedConfig | None = None,
        anchoring_config: AnchoringConfig | None = None,
        sources_config: SourcesConfig | None = None,
        use_mock_ledger: bool = False,
    ):
        self._feed_config = feed_config or FeedConfig()
        self._anchoring_config = anchoring_config or AnchoringConfig()

        self._database = database or Database()
        self._ledger = ledger or create_ledger_client(
            self._anchoring_config, use_mock=use_mock_ledger
        )
        self._feed_client = feed_client or FeedClient(self._feed_config)

        self._sources = SourcesService(self._database, sources_config)
        self._repository = TrackingRepository(self._database)
        self._gate = AnchoringGate(self._ledger)
        self._detector = ChangeDetector(self._repository, self._gate)
        self._poller = FeedPoller(self._detector, self._feed_client, self._feed_config)
        self._sweeper = ReconciliationSweeper(
            self._repository, self._gate, self._anchoring_config
        )

        self._running = False
        self._tasks: list[asyncio.Task] = []

        logger.info(
            "Pipeline service initialized",
            ledger=type(self._ledger).__name__,
            sweep_interval=self._anchoring_config.sweep_interval_seconds,
        )

    @property
    def gate(self) -> AnchoringGate:
        return self._gate

    @property
    def repository(self) -> TrackingRepository:
        return self._repository

    @property
    def sweeper(self) -> ReconciliationSweeper:
        return self._sweeper

    @property
    def is_running(self) -> bool:
        return self._running

    async def initialize(self) -> None:
        """Connect storage, ensure tables exist and seed sources."""
        await self._database.connect()
        await self._sources.repository.create_table()
        await self._repository.create_tables()
        await self._sources.ensure_seeded()

    async def start(self) -> None:
        """
        Start polling and reconciliation.

        Runs until stop() is called.
        """
        self._running = True
        logger.info("Starting pipeline service")

        await self.initialize()

        try:
            sources = await self._sources.get_enabled_sources()
            poller_tasks = self._poller.start(sources)
            sweeper_task = asyncio.create_task(self._sweeper.start(), name="sweeper")
            self._tasks = [*poller_tasks, sweeper_task]

            await asyncio.gather(*self._tasks, return_exceptions=True)

        except asyncio.CancelledError:
            logger.info("Pipeline service cancelled")
        except Exception as e:
            logger.error("Pipeline service error", error=str(e))
            raise
        finally:
            await self._cleanup()

    async def stop(self) -> None:
        """Stop the pipeline gracefully."""
        logger.info("Stopping pipeline service")
        self._running = False

        await self._sweeper.stop()
        await self._poller.stop()

        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _cleanup(self) -> None:
        await self._gate.drain()
        await self._feed_client.close()
        await self._ledger.close()
        await self._database.close()
        self._tasks.clear()
        logger.info("Pipeline service cleaned up")

    async def health_check(self) -> dict[str, Any]:
        """
        Check health of the pipeline.

        Returns:
            Dictionary with health status
        """
        return {
            "running": self._running,
            "database_healthy": await self._database.health_check(),
            "capacity_state": self._gate.state.value,
            "anchor_queue_depth": self._gate.queue_depth,
            "active_sources": self._poller.active_sources,
            "sweeper_running": self._sweeper.is_running,
        }
