"""Anchoring gate: serialized, backpressure-aware access to the ledger.

Every ledger write in the process goes through one AnchoringGate. The gate
guarantees:

- Exactly one ledger write in flight at a time. Requests are chained in call
  order (FIFO): each write starts only after the previous one has committed
  or failed. Waiting callers are suspended coroutines, not blocked threads.
- Writes never raise to the caller. Success returns the receipt id; every
  failure is logged and returned as None.
- Sticky capacity backpressure. InsufficientCapacity from the ledger moves
  the gate to EXHAUSTED; while exhausted every request (queued or new)
  returns None without touching the ledger. Only ``reset()`` moves it back
  to AVAILABLE, which the reconciliation sweeper does once per pass to let
  one probe write through.

A submitted write always runs to completion once it reaches the head of the
chain, even if the awaiting caller is cancelled.

Usage:
    gate = AnchoringGate(ledger)
    receipt = await gate.anchor(FingerprintPayload("sha256:..."))
    if receipt is None and gate.is_exhausted:
        ...  # stop issuing writes until the next sweep
"""

import asyncio
import enum
import time
from dataclasses import dataclass

import structlog

from headline_anchor.anchoring.errors import InsufficientCapacity, LedgerError
from headline_anchor.anchoring.ledger import LedgerClient
from headline_anchor.observability.metrics import MetricsCollector, get_metrics

logger = structlog.get_logger(__name__)


class CapacityState(enum.Enum):
    """Ledger capacity circuit states.

    AVAILABLE is the closed circuit (writes pass through); EXHAUSTED is the
    open circuit (writes short-circuit to None).
    """

    AVAILABLE = "available"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class FingerprintPayload:
    """Commitment to a bare content fingerprint."""

    fingerprint: str


@dataclass(frozen=True)
class ChangeEventPayload:
    """Commitment to a content transition, referencing the prior receipt."""

    prior_receipt_id: str | None
    old_fingerprint: str
    new_fingerprint: str


AnchorPayload = FingerprintPayload | ChangeEventPayload


class AnchoringGate:
    """Serializes ledger writes and holds the capacity-exhausted flag.

    Args:
        ledger: Ledger-write capability
        metrics: Metrics collector (defaults to the process collector)
    """

    def __init__(
        self,
        ledger: LedgerClient,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._ledger = ledger
        self._metrics = metrics or get_metrics()
        self._state = CapacityState.AVAILABLE
        self._tail: asyncio.Task | None = None
        self._queued = 0

    @property
    def state(self) -> CapacityState:
        return self._state

    @property
    def is_exhausted(self) -> bool:
        return self._state is CapacityState.EXHAUSTED

    @property
    def queue_depth(self) -> int:
        """Requests admitted to the chain that have not resolved yet."""
        return self._queued

    def reset(self) -> None:
        """Clear the capacity-exhausted flag so the next write probes the ledger."""
        if self._state is CapacityState.EXHAUSTED:
            logger.info("Ledger capacity flag cleared, allowing probe")
        self._state = CapacityState.AVAILABLE
        self._metrics.set_capacity_exhausted(False)

    async def anchor(self, payload: AnchorPayload) -> str | None:
        """
        Commit a payload to the ledger, one write at a time.

        Args:
            payload: FingerprintPayload or ChangeEventPayload

        Returns:
            Receipt id, or None if the write failed or was short-circuited
        """
        if self.is_exhausted:
            self._metrics.record_anchor_attempt("short_circuited")
            return None

        previous = self._tail
        task = asyncio.create_task(self._run_after(previous, payload))
        self._tail = task
        self._queued += 1
        task.add_done_callback(self._on_done)

        # Shielded so a cancelled caller does not abort an in-flight write
        return await asyncio.shield(task)

    async def anchor_fingerprint(self, fingerprint: str) -> str | None:
        return await self.anchor(FingerprintPayload(fingerprint))

    async def anchor_change_event(
        self,
        prior_receipt_id: str | None,
        old_fingerprint: str,
        new_fingerprint: str,
    ) -> str | None:
        return await self.anchor(
            ChangeEventPayload(prior_receipt_id, old_fingerprint, new_fingerprint)
        )

    async def drain(self) -> None:
        """Wait until every admitted request has resolved."""
        while self._tail is not None and not self._tail.done():
            await asyncio.wait({self._tail})

    def _on_done(self, task: asyncio.Task) -> None:
        self._queued -= 1
        if self._tail is task:
            self._tail = None

    async def _run_after(
        self, previous: asyncio.Task | None, payload: AnchorPayload
    ) -> str | None:
        if previous is not None and not previous.done():
            await asyncio.wait({previous})

        # Flag may have been set by a write that was ahead of us
        if self.is_exhausted:
            self._metrics.record_anchor_attempt("short_circuited")
            return None

        return await self._commit(payload)

    async def _commit(self, payload: AnchorPayload) -> str | None:
        start = time.monotonic()
        try:
            if isinstance(payload, ChangeEventPayload):
                receipt_id = await self._ledger.commit_change_event(
                    payload.prior_receipt_id,
                    payload.old_fingerprint,
                    payload.new_fingerprint,
                )
            else:
                receipt_id = await self._ledger.commit_fingerprint(payload.fingerprint)
        except InsufficientCapacity as e:
            self._state = CapacityState.EXHAUSTED
            self._metrics.set_capacity_exhausted(True)
            self._metrics.record_anchor_attempt(
                "capacity_exhausted", latency=time.monotonic() - start
            )
            logger.warning(
                "Insufficient ledger capacity, pausing anchoring until next sweep",
                error=str(e),
            )
            return None
        except Exception as e:
            # TransientFailure and anything unexpected: one-off, no state change
            self._metrics.record_anchor_attempt(
                "transient_failure", latency=time.monotonic() - start
            )
            logger.error(
                "Failed to anchor payload",
                payload_type=type(payload).__name__,
                error=str(e),
                error_type=type(e).__name__,
                ledger_error=isinstance(e, LedgerError),
            )
            return None

        self._metrics.record_anchor_attempt("anchored", latency=time.monotonic() - start)
        logger.info(
            "Payload anchored",
            payload_type=type(payload).__name__,
            receipt_id=receipt_id,
        )
        return receipt_id
