"""
Ledger-write capability.

The ledger is an external append-only store that accepts content
commitments and returns an opaque receipt id per write. Each write spends
account capacity that cannot be reused, so callers must go through the
AnchoringGate rather than calling a client directly.

Implementations:
- HTTPLedgerClient: talks JSON to a ledger-write service (signing and
  transport live behind that service)
- MockLedgerClient: in-memory ledger with finite capacity, for development
  and tests
"""

import hashlib
import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from headline_anchor.anchoring.config import AnchoringConfig
from headline_anchor.anchoring.errors import InsufficientCapacity, TransientFailure
from headline_anchor.ingestion.normalizer import strip_fingerprint_prefix

logger = logging.getLogger(__name__)

_INSUFFICIENT_MARKER = "insufficient funds"


class LedgerClient(ABC):
    """Abstract ledger-write capability.

    Both operations return a receipt id or raise InsufficientCapacity /
    TransientFailure.
    """

    @abstractmethod
    async def commit_fingerprint(self, fingerprint: str) -> str:
        """Commit a bare content fingerprint."""
        ...

    @abstractmethod
    async def commit_change_event(
        self,
        prior_receipt_id: str | None,
        old_fingerprint: str,
        new_fingerprint: str,
    ) -> str:
        """Commit a change event referencing the prior commitment."""
        ...

    async def close(self) -> None:
        """Release any underlying resources."""


class HTTPLedgerClient(LedgerClient):
    """
    Ledger client for a JSON ledger-write service.

    Endpoints (relative to ``ledger_url``):
        POST /fingerprints   {"hash": "<hex>"}
        POST /change-events  {"prior_receipt_id": ..., "old_hash": ..., "new_hash": ...}

    Both respond with ``{"receipt_id": "..."}`` (``txid`` is accepted too).
    HTTP 402 or an "insufficient funds" error body maps to
    InsufficientCapacity; everything else maps to TransientFailure.
    """

    def __init__(
        self,
        config: AnchoringConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self._config = config or AnchoringConfig()
        if not self._config.ledger_url:
            raise ValueError("ANCHOR_LEDGER_URL is required for HTTPLedgerClient")

        headers = {}
        if self._config.ledger_api_key:
            headers["Authorization"] = f"Bearer {self._config.ledger_api_key}"

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self._config.ledger_url.rstrip("/"),
            headers=headers,
            timeout=self._config.ledger_timeout_seconds,
        )

    async def commit_fingerprint(self, fingerprint: str) -> str:
        return await self._post(
            "/fingerprints", {"hash": strip_fingerprint_prefix(fingerprint)}
        )

    async def commit_change_event(
        self,
        prior_receipt_id: str | None,
        old_fingerprint: str,
        new_fingerprint: str,
    ) -> str:
        return await self._post(
            "/change-events",
            {
                "prior_receipt_id": prior_receipt_id,
                "old_hash": strip_fingerprint_prefix(old_fingerprint),
                "new_hash": strip_fingerprint_prefix(new_fingerprint),
            },
        )

    async def _post(self, path: str, payload: dict[str, Any]) -> str:
        try:
            response = await self._client.post(path, json=payload)
        except httpx.HTTPError as e:
            raise TransientFailure(f"Ledger request failed: {type(e).__name__}: {e}") from e

        if response.is_error and (
            response.status_code == 402 or _INSUFFICIENT_MARKER in response.text.lower()
        ):
            raise InsufficientCapacity(
                f"Ledger rejected write for lack of funds (HTTP {response.status_code})"
            )
        if response.is_error:
            raise TransientFailure(
                f"Ledger returned HTTP {response.status_code}: {response.text[:200]}"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise TransientFailure("Ledger returned a non-JSON response") from e

        receipt_id = None
        if isinstance(body, dict):
            receipt_id = body.get("receipt_id") or body.get("txid")
        if not receipt_id:
            raise TransientFailure("Ledger response carried no receipt id")
        return str(receipt_id)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class MockLedgerClient(LedgerClient):
    """
    In-memory ledger for development and tests.

    Receipts are deterministic: sha256 of the committed payload plus a
    sequence number, so re-committing the same content yields a new receipt.

    Args:
        capacity: Writes available before InsufficientCapacity (None = unlimited)
    """

    def __init__(self, capacity: int | None = None):
        self._capacity = capacity
        self._sequence = 0
        self.commits: list[tuple[str, dict[str, Any]]] = []

    @property
    def capacity(self) -> int | None:
        return self._capacity

    def refill(self, writes: int) -> None:
        """Add capacity for ``writes`` more commits."""
        if self._capacity is not None:
            self._capacity += writes

    async def commit_fingerprint(self, fingerprint: str) -> str:
        return self._commit("fingerprint", {"hash": strip_fingerprint_prefix(fingerprint)})

    async def commit_change_event(
        self,
        prior_receipt_id: str | None,
        old_fingerprint: str,
        new_fingerprint: str,
    ) -> str:
        return self._commit(
            "change_event",
            {
                "prior_receipt_id": prior_receipt_id,
                "old_hash": strip_fingerprint_prefix(old_fingerprint),
                "new_hash": strip_fingerprint_prefix(new_fingerprint),
            },
        )

    def _commit(self, kind: str, payload: dict[str, Any]) -> str:
        if self._capacity is not None:
            if self._capacity <= 0:
                raise InsufficientCapacity("Insufficient funds")
            self._capacity -= 1

        self._sequence += 1
        self.commits.append((kind, payload))
        digest = hashlib.sha256(
            f"{self._sequence}:{kind}:{sorted(payload.items())}".encode("utf-8")
        ).hexdigest()
        logger.debug("Mock ledger committed %s #%d", kind, self._sequence)
        return digest
