"""Sources service with seed support."""

import json
import logging
from pathlib import Path

from headline_anchor.sources.config import SourcesConfig
from headline_anchor.sources.repository import SourcesRepository
from headline_anchor.sources.schemas import Source
from headline_anchor.storage.database import Database

logger = logging.getLogger(__name__)

_SEED_FILE = Path(__file__).parent / "data" / "seed_sources.json"


def _parse_seed_entry(entry: dict, default_interval: int) -> Source:
    """Convert a JSON seed entry to a Source dataclass.

    Accepts both ``feed_url`` and ``feedUrl`` / ``pollInterval`` spellings.
    """
    return Source(
        name=entry["name"],
        feed_url=entry.get("feed_url") or entry["feedUrl"],
        poll_interval_seconds=int(
            entry.get("poll_interval_seconds")
            or entry.get("pollInterval")
            or default_interval
        ),
        enabled=entry.get("enabled", True),
    )


class SourcesService:
    """Source loading for the pipeline.

    Seeds the sources table from external JSON configuration and exposes
    the enabled set to the poller.
    """

    def __init__(
        self,
        database: Database,
        config: SourcesConfig | None = None,
    ) -> None:
        self._config = config or SourcesConfig()
        self._repo = SourcesRepository(database)

    @property
    def repository(self) -> SourcesRepository:
        """Access the underlying repository for direct DB operations."""
        return self._repo

    async def get_enabled_sources(self) -> list[Source]:
        return await self._repo.get_enabled()

    async def seed_from_json(self, path: Path | None = None) -> int:
        """Load sources from a JSON file into the database.

        Returns the number of sources upserted.
        """
        seed_path = path or self._config.seed_file or _SEED_FILE
        with open(seed_path) as f:
            entries = json.load(f)

        sources = [
            _parse_seed_entry(e, self._config.default_poll_interval_seconds)
            for e in entries
        ]
        count = await self._repo.bulk_upsert(sources)
        logger.info("Seeded %d sources from %s", count, seed_path)
        return count

    async def ensure_seeded(self) -> None:
        """Upsert sources from the configured seed file if seed_on_init is True."""
        if not self._config.seed_on_init:
            logger.debug("Source seeding disabled")
            return

        await self.seed_from_json()
