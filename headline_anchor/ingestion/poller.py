"""
Feed poller - one independent timer per enabled source.

Each tick fetches the source's feed, normalizes the entries and hands the
survivors to the change detector. Initial fetches are staggered by
``stagger_seconds * index`` so a fresh process does not hit every feed at
once. A failed fetch is logged and the tick skipped; the timer keeps
running.
"""

import asyncio

import structlog

from headline_anchor.ingestion.config import FeedConfig
from headline_anchor.ingestion.feed_client import FeedClient, FetchError
from headline_anchor.ingestion.normalizer import normalize_items
from headline_anchor.observability.logging import bound_context
from headline_anchor.observability.metrics import MetricsCollector, get_metrics
from headline_anchor.sources.schemas import Source
from headline_anchor.tracking.detector import ChangeDetector
from headline_anchor.tracking.schemas import DetectionSummary

logger = structlog.get_logger(__name__)


class FeedPoller:
    """
    Drives fetch -> normalize -> detect cycles for a set of sources.

    Usage:
        poller = FeedPoller(detector, feed_client)
        poller.start(sources)
        ...
        await poller.stop()
    """

    def __init__(
        self,
        detector: ChangeDetector,
        feed_client: FeedClient,
        config: FeedConfig | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._detector = detector
        self._feed_client = feed_client
        self._config = config or FeedConfig()
        self._metrics = metrics or get_metrics()
        self._tasks: dict[str, asyncio.Task] = {}
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def active_sources(self) -> list[str]:
        return [name for name, task in self._tasks.items() if not task.done()]

    def start(self, sources: list[Source]) -> list[asyncio.Task]:
        """Create one polling task per enabled source.

        The enabled set is fixed here. Disabling a source in the database
        takes effect on the next process start.
        """
        self._running = True
        enabled = [s for s in sources if s.enabled]
        logger.info("Starting feed polling", sources=len(enabled))

        for index, source in enumerate(enabled):
            self._tasks[source.name] = asyncio.create_task(
                self._run_source(source, index * self._config.stagger_seconds),
                name=f"poller_{source.name}",
            )
        return list(self._tasks.values())

    async def stop(self) -> None:
        """Cancel all polling tasks."""
        self._running = False
        for task in self._tasks.values():
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)
        self._tasks.clear()
        logger.info("Stopped all feed polling")

    async def poll_once(self, source: Source) -> DetectionSummary | None:
        """
        Run one tick for a source.

        Returns:
            DetectionSummary, or None when the fetch failed or produced no
            usable items
        """
        try:
            raw_items = await self._feed_client.fetch(
                source.feed_url, timeout=self._config.fetch_timeout_seconds
            )
        except FetchError as e:
            self._metrics.record_fetch(source.name, success=False)
            logger.error("Feed fetch failed", source=source.name, error=str(e))
            return None

        self._metrics.record_fetch(source.name, success=True)
        items = normalize_items(raw_items, self._config.description_max_length)
        if not items:
            return None

        return await self._detector.process(source, items)

    async def _run_source(self, source: Source, initial_delay: float) -> None:
        if initial_delay > 0:
            await asyncio.sleep(initial_delay)

        with bound_context(source=source.name):
            logger.info("Polling source", interval_seconds=source.poll_interval_seconds)

            while self._running:
                try:
                    await self.poll_once(source)
                except asyncio.CancelledError:
                    break
                except Exception as e:
                    logger.error("Error polling source", error=str(e), exc_info=True)

                await asyncio.sleep(source.poll_interval_seconds)
