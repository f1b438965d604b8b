"""Database repository for tracked items and change records.

Covers the write path used by the change detector, the two reconciliation
queries used by the sweeper, and read-only projections for the query API.
"""

import logging
from typing import Any

from headline_anchor.storage.database import Database
from headline_anchor.tracking.schemas import ChangeRecord, TrackedItem, TrackingStats

logger = logging.getLogger(__name__)

# Requires the sources table (see SourcesRepository.create_table)
_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS tracked_items (
    id             BIGSERIAL PRIMARY KEY,
    source_id      INTEGER NOT NULL REFERENCES sources(id),
    title          TEXT NOT NULL,
    description    TEXT,
    url            TEXT NOT NULL UNIQUE,
    fingerprint    TEXT NOT NULL,
    receipt_id     TEXT,
    first_seen_at  TIMESTAMPTZ NOT NULL,
    created_at     TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_tracked_items_unanchored
    ON tracked_items(id) WHERE receipt_id IS NULL;
CREATE INDEX IF NOT EXISTS idx_tracked_items_first_seen
    ON tracked_items(first_seen_at DESC);

CREATE TABLE IF NOT EXISTS change_records (
    id                 BIGSERIAL PRIMARY KEY,
    item_id            BIGINT NOT NULL REFERENCES tracked_items(id),
    old_title          TEXT NOT NULL,
    new_title          TEXT NOT NULL,
    old_description    TEXT,
    new_description    TEXT,
    old_fingerprint    TEXT NOT NULL,
    new_fingerprint    TEXT NOT NULL,
    prior_receipt_id   TEXT,
    change_receipt_id  TEXT,
    detected_at        TIMESTAMPTZ NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_change_records_unanchored
    ON change_records(id) WHERE change_receipt_id IS NULL;
CREATE INDEX IF NOT EXISTS idx_change_records_new_fingerprint
    ON change_records(new_fingerprint) WHERE change_receipt_id IS NULL;
CREATE INDEX IF NOT EXISTS idx_change_records_detected
    ON change_records(detected_at DESC);
"""

_INSERT_ITEM_SQL = """
INSERT INTO tracked_items (
    source_id, title, description, url, fingerprint, receipt_id, first_seen_at
) VALUES ($1, $2, $3, $4, $5, $6, $7)
RETURNING *
"""

_INSERT_CHANGE_SQL = """
INSERT INTO change_records (
    item_id, old_title, new_title, old_description, new_description,
    old_fingerprint, new_fingerprint, prior_receipt_id, change_receipt_id,
    detected_at
) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
RETURNING *
"""

_UPDATE_ITEM_SQL = """
UPDATE tracked_items
SET title = $2, description = $3, fingerprint = $4, receipt_id = $5
WHERE id = $1
"""

_CHANGE_SELECT_SQL = """
SELECT cr.*, ti.url, ti.receipt_id AS original_receipt_id, s.name AS source_name
FROM change_records cr
JOIN tracked_items ti ON cr.item_id = ti.id
JOIN sources s ON ti.source_id = s.id
"""

_ITEM_SELECT_SQL = """
SELECT ti.*, s.name AS source_name
FROM tracked_items ti
JOIN sources s ON ti.source_id = s.id
"""


def _get(record, key: str, default: Any = None) -> Any:
    """Read an optional column (joined projections are not always selected)."""
    try:
        return record[key]
    except KeyError:
        return default


def _row_to_item(record) -> TrackedItem:
    """Convert an asyncpg Record to a TrackedItem."""
    return TrackedItem(
        id=record["id"],
        source_id=record["source_id"],
        title=record["title"],
        description=record["description"],
        url=record["url"],
        fingerprint=record["fingerprint"],
        receipt_id=record["receipt_id"],
        first_seen_at=record["first_seen_at"],
        created_at=_get(record, "created_at"),
        source_name=_get(record, "source_name"),
    )


def _row_to_change(record) -> ChangeRecord:
    """Convert an asyncpg Record to a ChangeRecord."""
    return ChangeRecord(
        id=record["id"],
        item_id=record["item_id"],
        old_title=record["old_title"],
        new_title=record["new_title"],
        old_description=record["old_description"],
        new_description=record["new_description"],
        old_fingerprint=record["old_fingerprint"],
        new_fingerprint=record["new_fingerprint"],
        prior_receipt_id=record["prior_receipt_id"],
        change_receipt_id=record["change_receipt_id"],
        detected_at=record["detected_at"],
        url=_get(record, "url"),
        original_receipt_id=_get(record, "original_receipt_id"),
        source_name=_get(record, "source_name"),
    )


class TrackingRepository:
    """Persistence for TrackedItem and ChangeRecord rows."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        """Create tracked_items and change_records (idempotent)."""
        await self._db.execute(_CREATE_TABLES_SQL)
        logger.info("Tracking tables ensured")

    # ── Detector write path ─────────────────────────────────────

    async def get_item_by_url(self, url: str) -> TrackedItem | None:
        row = await self._db.fetchrow(
            "SELECT * FROM tracked_items WHERE url = $1", url
        )
        return _row_to_item(row) if row else None

    async def insert_item(self, item: TrackedItem) -> TrackedItem:
        """Insert a newly observed item.

        Returns:
            The stored item with its DB-assigned id.
        """
        row = await self._db.fetchrow(
            _INSERT_ITEM_SQL,
            item.source_id,
            item.title,
            item.description,
            item.url,
            item.fingerprint,
            item.receipt_id,
            item.first_seen_at,
        )
        return _row_to_item(row)

    async def apply_change(
        self, change: ChangeRecord, receipt_id: str | None
    ) -> ChangeRecord:
        """Record a content change and move the item to its new state.

        Inserts the ChangeRecord and overwrites the TrackedItem's title,
        description, fingerprint and receipt in one transaction.

        Args:
            change: The transition to record (old/new content and hashes).
            receipt_id: Receipt for the bare new fingerprint, or None.

        Returns:
            The stored ChangeRecord.
        """
        async with self._db.transaction() as conn:
            row = await conn.fetchrow(
                _INSERT_CHANGE_SQL,
                change.item_id,
                change.old_title,
                change.new_title,
                change.old_description,
                change.new_description,
                change.old_fingerprint,
                change.new_fingerprint,
                change.prior_receipt_id,
                change.change_receipt_id,
                change.detected_at,
            )
            await conn.execute(
                _UPDATE_ITEM_SQL,
                change.item_id,
                change.new_title,
                change.new_description,
                change.new_fingerprint,
                receipt_id,
            )
        return _row_to_change(row)

    # ── Reconciliation ──────────────────────────────────────────

    async def get_unanchored_items(self) -> list[TrackedItem]:
        """All tracked items without a receipt, in creation order."""
        rows = await self._db.fetch(
            "SELECT * FROM tracked_items WHERE receipt_id IS NULL ORDER BY id"
        )
        return [_row_to_item(r) for r in rows]

    async def get_unanchored_changes(self) -> list[ChangeRecord]:
        """All change records without a change receipt, in creation order."""
        rows = await self._db.fetch(
            "SELECT * FROM change_records WHERE change_receipt_id IS NULL ORDER BY id"
        )
        return [_row_to_change(r) for r in rows]

    async def set_item_receipt(
        self, item_id: int, fingerprint: str, receipt_id: str
    ) -> bool:
        """Attach a receipt to an item if it still carries ``fingerprint``.

        The fingerprint guard keeps a receipt for stale content from landing
        on an item that changed after the sweep loaded it.

        Returns:
            True if a row was updated.
        """
        result = await self._db.execute(
            """
            UPDATE tracked_items SET receipt_id = $3
            WHERE id = $1 AND fingerprint = $2 AND receipt_id IS NULL
            """,
            item_id, fingerprint, receipt_id,
        )
        return result.endswith(" 1")

    async def set_change_receipt(self, change_id: int, receipt_id: str) -> bool:
        """Backfill the receipt of one change record. Returns True if updated."""
        result = await self._db.execute(
            """
            UPDATE change_records SET change_receipt_id = $2
            WHERE id = $1 AND change_receipt_id IS NULL
            """,
            change_id, receipt_id,
        )
        return result.endswith(" 1")

    async def backfill_change_receipts(
        self, fingerprint: str, receipt_id: str
    ) -> list[int]:
        """Backfill every unanchored change record whose new fingerprint matches.

        Returns:
            Ids of the change records that were updated.
        """
        rows = await self._db.fetch(
            """
            UPDATE change_records SET change_receipt_id = $2
            WHERE new_fingerprint = $1 AND change_receipt_id IS NULL
            RETURNING id
            """,
            fingerprint, receipt_id,
        )
        return [r["id"] for r in rows]

    # ── Read-only projections ───────────────────────────────────

    async def list_items(
        self,
        page: int = 1,
        limit: int = 20,
        source_name: str | None = None,
    ) -> list[TrackedItem]:
        """Tracked items newest first, optionally filtered by source name."""
        offset = (max(page, 1) - 1) * limit
        if source_name:
            rows = await self._db.fetch(
                _ITEM_SELECT_SQL
                + " WHERE s.name = $1 ORDER BY ti.first_seen_at DESC LIMIT $2 OFFSET $3",
                source_name, limit, offset,
            )
        else:
            rows = await self._db.fetch(
                _ITEM_SELECT_SQL
                + " ORDER BY ti.first_seen_at DESC LIMIT $1 OFFSET $2",
                limit, offset,
            )
        return [_row_to_item(r) for r in rows]

    async def get_item(self, item_id: int) -> TrackedItem | None:
        row = await self._db.fetchrow(_ITEM_SELECT_SQL + " WHERE ti.id = $1", item_id)
        return _row_to_item(row) if row else None

    async def list_changes(
        self,
        page: int = 1,
        limit: int = 20,
        source_name: str | None = None,
    ) -> list[ChangeRecord]:
        """Change records newest first, joined with item URL and source name."""
        offset = (max(page, 1) - 1) * limit
        if source_name:
            rows = await self._db.fetch(
                _CHANGE_SELECT_SQL
                + " WHERE s.name = $1 ORDER BY cr.detected_at DESC LIMIT $2 OFFSET $3",
                source_name, limit, offset,
            )
        else:
            rows = await self._db.fetch(
                _CHANGE_SELECT_SQL
                + " ORDER BY cr.detected_at DESC LIMIT $1 OFFSET $2",
                limit, offset,
            )
        return [_row_to_change(r) for r in rows]

    async def get_change(self, change_id: int) -> ChangeRecord | None:
        row = await self._db.fetchrow(
            _CHANGE_SELECT_SQL + " WHERE cr.id = $1", change_id
        )
        return _row_to_change(row) if row else None

    async def get_changes_for_item(self, item_id: int) -> list[ChangeRecord]:
        rows = await self._db.fetch(
            _CHANGE_SELECT_SQL + " WHERE cr.item_id = $1 ORDER BY cr.id",
            item_id,
        )
        return [_row_to_change(r) for r in rows]

    async def get_stats(self) -> TrackingStats:
        """Aggregate counts: tracked, changes, anchored, enabled sources."""
        row = await self._db.fetchrow(
            """
            SELECT
                (SELECT COUNT(*) FROM tracked_items) AS tracked,
                (SELECT COUNT(*) FROM change_records) AS changes,
                (SELECT COUNT(*) FROM tracked_items WHERE receipt_id IS NOT NULL) AS anchored,
                (SELECT COUNT(*) FROM sources WHERE enabled = TRUE) AS sources
            """
        )
        return TrackingStats(
            tracked=row["tracked"],
            changes=row["changes"],
            anchored=row["anchored"],
            sources=row["sources"],
        )
