"""
Change detection for normalized feed items.

Compares each item with the stored TrackedItem for the same URL and
classifies it:

- NEW: no stored item. The fingerprint is anchored and a TrackedItem is
  inserted with the resulting receipt (None if anchoring failed).
- UNCHANGED: stored fingerprint matches. Nothing is written or anchored.
- CHANGED: stored fingerprint differs. Two commitments are requested, in
  order: a change event referencing the item's prior receipt and both
  fingerprints, then the bare new fingerprint. A ChangeRecord carrying the
  change-event receipt is inserted and the item is overwritten with the new
  content and the new fingerprint's receipt.

A failed anchor leaves the corresponding receipt null; the reconciliation
sweeper closes the gap later. The detector is the only writer of
TrackedItem and ChangeRecord rows.

Each URL belongs to exactly one source's feed, so detector passes of
different sources never race on the same row. This is assumed, not enforced.
"""

from datetime import datetime, timezone

import structlog

from headline_anchor.anchoring.gate import AnchoringGate
from headline_anchor.ingestion.schemas import NormalizedItem
from headline_anchor.observability.metrics import MetricsCollector, get_metrics
from headline_anchor.sources.schemas import Source
from headline_anchor.tracking.repository import TrackingRepository
from headline_anchor.tracking.schemas import (
    ChangeKind,
    ChangeRecord,
    DetectionSummary,
    TrackedItem,
)

logger = structlog.get_logger(__name__)


class ChangeDetector:
    """Classifies normalized items and applies the resulting storage writes."""

    def __init__(
        self,
        repository: TrackingRepository,
        gate: AnchoringGate,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._repo = repository
        self._gate = gate
        self._metrics = metrics or get_metrics()

    async def process(
        self, source: Source, items: list[NormalizedItem]
    ) -> DetectionSummary:
        """
        Run detection over one source's items.

        An error on one item is logged and counted; the remaining items are
        still processed.

        Args:
            source: Source the items were fetched from
            items: Normalized items in feed order

        Returns:
            DetectionSummary with per-kind counts
        """
        summary = DetectionSummary(source_name=source.name)

        for item in items:
            try:
                kind = await self.process_item(source, item)
            except Exception as e:
                summary.failed += 1
                logger.error(
                    "Failed to process item",
                    source=source.name,
                    url=item.url,
                    error=str(e),
                    exc_info=True,
                )
                continue

            summary.record(kind)
            self._metrics.record_detection(kind.value)

        if summary.new or summary.changed:
            logger.info(
                "Detected feed updates",
                source=source.name,
                new=summary.new,
                changed=summary.changed,
            )
        return summary

    async def process_item(self, source: Source, item: NormalizedItem) -> ChangeKind:
        """Classify a single item and apply its writes."""
        existing = await self._repo.get_item_by_url(item.url)

        if existing is None:
            receipt_id = await self._gate.anchor_fingerprint(item.fingerprint)
            await self._repo.insert_item(
                TrackedItem(
                    source_id=source.id,
                    title=item.title,
                    description=item.description,
                    url=item.url,
                    fingerprint=item.fingerprint,
                    receipt_id=receipt_id,
                    first_seen_at=_utcnow(),
                )
            )
            return ChangeKind.NEW

        if existing.fingerprint == item.fingerprint:
            return ChangeKind.UNCHANGED

        change_receipt_id = await self._gate.anchor_change_event(
            existing.receipt_id, existing.fingerprint, item.fingerprint
        )
        receipt_id = await self._gate.anchor_fingerprint(item.fingerprint)

        await self._repo.apply_change(
            ChangeRecord(
                item_id=existing.id,
                old_title=existing.title,
                new_title=item.title,
                old_description=existing.description,
                new_description=item.description,
                old_fingerprint=existing.fingerprint,
                new_fingerprint=item.fingerprint,
                prior_receipt_id=existing.receipt_id,
                change_receipt_id=change_receipt_id,
                detected_at=_utcnow(),
            ),
            receipt_id,
        )
        logger.debug(
            "Item content changed",
            url=item.url,
            old_fingerprint=existing.fingerprint,
            new_fingerprint=item.fingerprint,
        )
        return ChangeKind.CHANGED


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)
