"""Tests for ledger clients."""

import json

import httpx
import pytest
import respx

from headline_anchor.anchoring.config import AnchoringConfig
from headline_anchor.anchoring.errors import InsufficientCapacity, TransientFailure
from headline_anchor.anchoring.ledger import HTTPLedgerClient, MockLedgerClient

LEDGER_URL = "https://ledger.example.com"


@pytest.fixture
def ledger_config() -> AnchoringConfig:
    return AnchoringConfig(ledger_url=LEDGER_URL, ledger_api_key="secret")


class TestHTTPLedgerClient:
    """Tests for HTTPLedgerClient."""

    def test_requires_ledger_url(self) -> None:
        with pytest.raises(ValueError):
            HTTPLedgerClient(AnchoringConfig(ledger_url=None))

    @pytest.mark.asyncio
    @respx.mock
    async def test_commit_fingerprint_posts_bare_hex(self, ledger_config) -> None:
        route = respx.post(f"{LEDGER_URL}/fingerprints").mock(
            return_value=httpx.Response(200, json={"receipt_id": "tx-1"})
        )
        client = HTTPLedgerClient(ledger_config)

        receipt = await client.commit_fingerprint("sha256:abc123")
        await client.close()

        assert receipt == "tx-1"
        request = route.calls.last.request
        assert json.loads(request.content) == {"hash": "abc123"}
        assert request.headers["Authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    @respx.mock
    async def test_commit_change_event_payload(self, ledger_config) -> None:
        route = respx.post(f"{LEDGER_URL}/change-events").mock(
            return_value=httpx.Response(201, json={"txid": "tx-2"})
        )
        client = HTTPLedgerClient(ledger_config)

        receipt = await client.commit_change_event("tx-1", "sha256:aa", "sha256:bb")
        await client.close()

        assert receipt == "tx-2"
        assert json.loads(route.calls.last.request.content) == {
            "prior_receipt_id": "tx-1",
            "old_hash": "aa",
            "new_hash": "bb",
        }

    @pytest.mark.asyncio
    @respx.mock
    async def test_402_maps_to_insufficient_capacity(self, ledger_config) -> None:
        respx.post(f"{LEDGER_URL}/fingerprints").mock(
            return_value=httpx.Response(402, json={"error": "payment required"})
        )
        client = HTTPLedgerClient(ledger_config)

        with pytest.raises(InsufficientCapacity):
            await client.commit_fingerprint("sha256:abc")

    @pytest.mark.asyncio
    @respx.mock
    async def test_insufficient_funds_body_maps_to_capacity(self, ledger_config) -> None:
        respx.post(f"{LEDGER_URL}/fingerprints").mock(
            return_value=httpx.Response(500, json={"error": "Insufficient funds"})
        )
        client = HTTPLedgerClient(ledger_config)

        with pytest.raises(InsufficientCapacity):
            await client.commit_fingerprint("sha256:abc")

    @pytest.mark.asyncio
    @respx.mock
    async def test_funds_wording_in_success_body_is_not_capacity(self, ledger_config) -> None:
        respx.post(f"{LEDGER_URL}/fingerprints").mock(
            return_value=httpx.Response(
                200,
                json={"receipt_id": "tx-9", "note": "warning: insufficient funds soon"},
            )
        )
        client = HTTPLedgerClient(ledger_config)

        assert await client.commit_fingerprint("sha256:abc") == "tx-9"

    @pytest.mark.asyncio
    @respx.mock
    async def test_server_error_is_transient(self, ledger_config) -> None:
        respx.post(f"{LEDGER_URL}/fingerprints").mock(
            return_value=httpx.Response(503, text="upstream unavailable")
        )
        client = HTTPLedgerClient(ledger_config)

        with pytest.raises(TransientFailure):
            await client.commit_fingerprint("sha256:abc")

    @pytest.mark.asyncio
    @respx.mock
    async def test_network_error_is_transient(self, ledger_config) -> None:
        respx.post(f"{LEDGER_URL}/fingerprints").mock(
            side_effect=httpx.ConnectError("connection refused")
        )
        client = HTTPLedgerClient(ledger_config)

        with pytest.raises(TransientFailure):
            await client.commit_fingerprint("sha256:abc")

    @pytest.mark.asyncio
    @respx.mock
    async def test_missing_receipt_is_transient(self, ledger_config) -> None:
        respx.post(f"{LEDGER_URL}/fingerprints").mock(
            return_value=httpx.Response(200, json={"status": "ok"})
        )
        client = HTTPLedgerClient(ledger_config)

        with pytest.raises(TransientFailure):
            await client.commit_fingerprint("sha256:abc")

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_json_body_is_transient(self, ledger_config) -> None:
        respx.post(f"{LEDGER_URL}/fingerprints").mock(
            return_value=httpx.Response(200, text="<html>ok</html>")
        )
        client = HTTPLedgerClient(ledger_config)

        with pytest.raises(TransientFailure):
            await client.commit_fingerprint("sha256:abc")


class TestMockLedgerClient:
    """Tests for the in-memory ledger."""

    @pytest.mark.asyncio
    async def test_unlimited_capacity(self) -> None:
        ledger = MockLedgerClient()

        receipts = [await ledger.commit_fingerprint(f"sha256:{i}") for i in range(5)]

        assert len(set(receipts)) == 5
        assert ledger.commits[0] == ("fingerprint", {"hash": "0"})

    @pytest.mark.asyncio
    async def test_recommitting_same_content_yields_new_receipt(self) -> None:
        ledger = MockLedgerClient()

        first = await ledger.commit_fingerprint("sha256:abc")
        second = await ledger.commit_fingerprint("sha256:abc")

        assert first != second

    @pytest.mark.asyncio
    async def test_raises_when_capacity_spent(self) -> None:
        ledger = MockLedgerClient(capacity=1)
        await ledger.commit_fingerprint("sha256:a")

        with pytest.raises(InsufficientCapacity, match="Insufficient funds"):
            await ledger.commit_change_event(None, "sha256:a", "sha256:b")

        assert len(ledger.commits) == 1

    @pytest.mark.asyncio
    async def test_refill_restores_capacity(self) -> None:
        ledger = MockLedgerClient(capacity=0)

        with pytest.raises(InsufficientCapacity):
            await ledger.commit_fingerprint("sha256:a")

        ledger.refill(1)
        assert await ledger.commit_fingerprint("sha256:a")
        assert ledger.capacity == 0
