"""
Reconciliation sweeper - retries ledger writes that never produced a receipt.

Runs once at startup and then on a fixed period. Each pass:
1. Loads every unanchored TrackedItem and ChangeRecord (creation order)
2. Returns immediately if there is nothing to do
3. Clears the gate's capacity flag, letting exactly one probe write through
4. Re-anchors item fingerprints, backfilling change records that share the
   same new fingerprint
5. Re-anchors the remaining change events

Within each loop a null receipt is inspected: if the gate is now exhausted
the loop stops (every further write would short-circuit), otherwise the
failure was transient and the loop moves on to the next record.
"""

import asyncio
from dataclasses import dataclass

import structlog

from headline_anchor.anchoring.config import AnchoringConfig
from headline_anchor.anchoring.gate import AnchoringGate
from headline_anchor.observability.metrics import MetricsCollector, get_metrics
from headline_anchor.tracking.repository import TrackingRepository

logger = structlog.get_logger(__name__)


@dataclass
class SweepResult:
    """Outcome of one reconciliation pass."""

    pending_items: int = 0
    pending_changes: int = 0
    retried_items: int = 0
    retried_changes: int = 0
    backfilled_changes: int = 0
    failed: int = 0
    capacity_exhausted: bool = False

    @property
    def pending(self) -> int:
        return self.pending_items + self.pending_changes

    @property
    def retried(self) -> int:
        """Records that received a receipt during this pass."""
        return self.retried_items + self.retried_changes + self.backfilled_changes

    @property
    def still_waiting(self) -> int:
        return self.pending - self.retried


class ReconciliationSweeper:
    """
    Periodic pass that drives unanchored records back through the gate.

    Usage:
        sweeper = ReconciliationSweeper(repository, gate)
        await sweeper.start()  # Runs until stopped

        result = await sweeper.run_once()  # Single pass
    """

    def __init__(
        self,
        repository: TrackingRepository,
        gate: AnchoringGate,
        config: AnchoringConfig | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._repo = repository
        self._gate = gate
        self._config = config or AnchoringConfig()
        self._metrics = metrics or get_metrics()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Run passes on the configured interval until stop() is called."""
        self._running = True
        interval = self._config.sweep_interval_seconds
        logger.info("Starting reconciliation sweeper", interval_seconds=interval)

        try:
            if not self._config.sweep_on_startup:
                await asyncio.sleep(interval)

            while self._running:
                try:
                    await self.run_once()
                except Exception as e:
                    logger.error("Reconciliation pass failed", error=str(e), exc_info=True)

                await asyncio.sleep(interval)
        finally:
            self._running = False
            logger.info("Reconciliation sweeper stopped")

    async def stop(self) -> None:
        self._running = False

    async def run_once(self) -> SweepResult:
        """
        Execute one reconciliation pass.

        Returns:
            SweepResult with pending/retried counts
        """
        items = await self._repo.get_unanchored_items()
        changes = await self._repo.get_unanchored_changes()
        result = SweepResult(pending_items=len(items), pending_changes=len(changes))

        if result.pending == 0:
            return result

        self._gate.reset()
        backfilled: set[int] = set()

        for item in items:
            try:
                receipt_id = await self._gate.anchor_fingerprint(item.fingerprint)
                if receipt_id is None:
                    if self._gate.is_exhausted:
                        result.capacity_exhausted = True
                        break
                    continue

                attached = await self._repo.set_item_receipt(
                    item.id, item.fingerprint, receipt_id
                )
                if attached:
                    result.retried_items += 1
                else:
                    logger.debug(
                        "Item changed during sweep, receipt not attached",
                        item_id=item.id,
                    )
                backfilled.update(
                    await self._repo.backfill_change_receipts(item.fingerprint, receipt_id)
                )
            except Exception as e:
                result.failed += 1
                logger.error(
                    "Failed to reconcile item",
                    item_id=item.id,
                    url=item.url,
                    error=str(e),
                    exc_info=True,
                )

        result.backfilled_changes = sum(1 for c in changes if c.id in backfilled)

        for change in changes:
            if change.id in backfilled:
                continue
            try:
                receipt_id = await self._gate.anchor_change_event(
                    change.prior_receipt_id,
                    change.old_fingerprint,
                    change.new_fingerprint,
                )
                if receipt_id is None:
                    if self._gate.is_exhausted:
                        result.capacity_exhausted = True
                        break
                    continue

                await self._repo.set_change_receipt(change.id, receipt_id)
                result.retried_changes += 1
            except Exception as e:
                result.failed += 1
                logger.error(
                    "Failed to reconcile change record",
                    change_id=change.id,
                    error=str(e),
                    exc_info=True,
                )

        self._metrics.record_sweep(result.pending, result.retried)
        logger.info(
            "Reconciliation pass complete",
            retried=result.retried,
            pending=result.pending,
            items_retried=result.retried_items,
            changes_retried=result.retried_changes + result.backfilled_changes,
        )
        if result.capacity_exhausted:
            logger.warning(
                "Ledger capacity exhausted, records still waiting",
                waiting=result.still_waiting,
            )
        return result
