"""Ledger anchoring: serialized writes, capacity backpressure, reconciliation.

Usage:
    from headline_anchor.anchoring import AnchoringGate, MockLedgerClient

    gate = AnchoringGate(MockLedgerClient())
    receipt_id = await gate.anchor_fingerprint("sha256:...")
"""

from headline_anchor.anchoring.config import AnchoringConfig
from headline_anchor.anchoring.errors import (
    InsufficientCapacity,
    LedgerError,
    TransientFailure,
)
from headline_anchor.anchoring.gate import (
    AnchoringGate,
    CapacityState,
    ChangeEventPayload,
    FingerprintPayload,
)
from headline_anchor.anchoring.ledger import HTTPLedgerClient, LedgerClient, MockLedgerClient
from headline_anchor.anchoring.sweeper import ReconciliationSweeper, SweepResult

__all__ = [
    "AnchoringConfig",
    "AnchoringGate",
    "CapacityState",
    "ChangeEventPayload",
    "FingerprintPayload",
    "HTTPLedgerClient",
    "InsufficientCapacity",
    "LedgerClient",
    "LedgerError",
    "MockLedgerClient",
    "ReconciliationSweeper",
    "SweepResult",
    "TransientFailure",
]
