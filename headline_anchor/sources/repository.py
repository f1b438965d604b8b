"""Database repository for the sources table."""

import logging

from headline_anchor.sources.schemas import Source
from headline_anchor.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS sources (
    id                    SERIAL PRIMARY KEY,
    name                  TEXT NOT NULL UNIQUE,
    feed_url              TEXT NOT NULL UNIQUE,
    enabled               BOOLEAN NOT NULL DEFAULT TRUE,
    poll_interval_seconds INTEGER NOT NULL DEFAULT 300,
    created_at            TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at            TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_sources_enabled
    ON sources(enabled) WHERE enabled = TRUE;
"""

_UPSERT_SQL = """
INSERT INTO sources (name, feed_url, poll_interval_seconds, enabled)
VALUES ($1, $2, $3, $4)
ON CONFLICT (feed_url) DO UPDATE SET
    name = EXCLUDED.name,
    poll_interval_seconds = EXCLUDED.poll_interval_seconds,
    enabled = EXCLUDED.enabled,
    updated_at = NOW()
RETURNING *
"""

_BULK_UPSERT_SQL = """
INSERT INTO sources (name, feed_url, poll_interval_seconds, enabled)
SELECT * FROM unnest($1::text[], $2::text[], $3::integer[], $4::boolean[])
ON CONFLICT (feed_url) DO UPDATE SET
    name = EXCLUDED.name,
    poll_interval_seconds = EXCLUDED.poll_interval_seconds,
    enabled = EXCLUDED.enabled,
    updated_at = NOW()
"""


def _record_to_source(record) -> Source:
    """Convert an asyncpg Record to a Source dataclass."""
    return Source(
        id=record["id"],
        name=record["name"],
        feed_url=record["feed_url"],
        poll_interval_seconds=record["poll_interval_seconds"],
        enabled=record["enabled"],
        created_at=record["created_at"],
        updated_at=record["updated_at"],
    )


class SourcesRepository:
    """CRUD operations for the sources table."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the sources table and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Sources table ensured")

    async def upsert(self, source: Source) -> Source:
        """Insert or update a single source keyed by feed URL."""
        row = await self._db.fetchrow(
            _UPSERT_SQL,
            source.name,
            source.feed_url,
            source.poll_interval_seconds,
            source.enabled,
        )
        return _record_to_source(row)

    async def bulk_upsert(self, sources: list[Source]) -> int:
        """Insert or update multiple sources in one statement.

        Returns the number of sources processed.
        """
        if not sources:
            return 0

        await self._db.execute(
            _BULK_UPSERT_SQL,
            [s.name for s in sources],
            [s.feed_url for s in sources],
            [s.poll_interval_seconds for s in sources],
            [s.enabled for s in sources],
        )
        logger.info("Bulk upserted %d sources", len(sources))
        return len(sources)

    async def get_by_id(self, source_id: int) -> Source | None:
        row = await self._db.fetchrow("SELECT * FROM sources WHERE id = $1", source_id)
        return _record_to_source(row) if row else None

    async def get_by_feed_url(self, feed_url: str) -> Source | None:
        row = await self._db.fetchrow(
            "SELECT * FROM sources WHERE feed_url = $1", feed_url
        )
        return _record_to_source(row) if row else None

    async def get_enabled(self) -> list[Source]:
        """Fetch all enabled sources in a stable (creation) order."""
        rows = await self._db.fetch(
            "SELECT * FROM sources WHERE enabled = TRUE ORDER BY id"
        )
        return [_record_to_source(r) for r in rows]

    async def set_enabled(self, feed_url: str, enabled: bool) -> bool:
        """Enable or disable a source. Returns True if a row was updated.

        Disabling never deletes the source or anything tracked from it.
        """
        result = await self._db.execute(
            """
            UPDATE sources SET enabled = $2, updated_at = NOW()
            WHERE feed_url = $1 AND enabled <> $2
            """,
            feed_url, enabled,
        )
        return result.endswith("1")

    async def count(self, enabled_only: bool = False) -> int:
        """Count sources in the table."""
        if enabled_only:
            return await self._db.fetchval(
                "SELECT COUNT(*) FROM sources WHERE enabled = TRUE"
            )
        return await self._db.fetchval("SELECT COUNT(*) FROM sources")
