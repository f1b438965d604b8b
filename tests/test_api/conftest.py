"""Shared fixtures for API tests."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from headline_anchor.api.app import create_app
from headline_anchor.api.dependencies import (
    get_database,
    get_sources_repository,
    get_tracking_repository,
    set_pipeline,
)
from headline_anchor.sources.schemas import Source
from headline_anchor.tracking.schemas import ChangeRecord, TrackedItem, TrackingStats


def _make_item(item_id: int = 7, receipt_id: str | None = "rcpt-1") -> TrackedItem:
    return TrackedItem(
        id=item_id,
        source_id=1,
        source_name="BBC News",
        title="Parliament passes budget",
        description="The vote was close.",
        url=f"https://example.com/news/{item_id}",
        fingerprint="sha256:" + "a" * 64,
        receipt_id=receipt_id,
        first_seen_at=datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc),
    )


def _make_change(change_id: int = 3) -> ChangeRecord:
    return ChangeRecord(
        id=change_id,
        item_id=7,
        url="https://example.com/news/7",
        source_name="BBC News",
        old_title="Budget vote delayed",
        new_title="Parliament passes budget",
        old_description=None,
        new_description="The vote was close.",
        old_fingerprint="sha256:" + "b" * 64,
        new_fingerprint="sha256:" + "a" * 64,
        prior_receipt_id="rcpt-0",
        change_receipt_id=None,
        original_receipt_id="rcpt-1",
        detected_at=datetime(2026, 3, 1, 13, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def mock_tracking_repo() -> MagicMock:
    repo = MagicMock()
    repo.list_items = AsyncMock(return_value=[_make_item(7), _make_item(8, receipt_id=None)])
    repo.get_item = AsyncMock(return_value=_make_item(7))
    repo.list_changes = AsyncMock(return_value=[_make_change()])
    repo.get_change = AsyncMock(return_value=_make_change())
    repo.get_changes_for_item = AsyncMock(return_value=[_make_change()])
    repo.get_stats = AsyncMock(
        return_value=TrackingStats(tracked=10, changes=4, anchored=8, sources=5)
    )
    return repo


@pytest.fixture
def mock_sources_repo() -> MagicMock:
    repo = MagicMock()
    repo.get_enabled = AsyncMock(
        return_value=[
            Source(id=1, name="BBC News", feed_url="https://feeds.bbci.co.uk/news/rss.xml"),
        ]
    )
    return repo


@pytest.fixture
def mock_db() -> AsyncMock:
    db = AsyncMock()
    db.health_check = AsyncMock(return_value=True)
    return db


@pytest.fixture
def client(mock_tracking_repo, mock_sources_repo, mock_db):
    app = create_app()
    app.dependency_overrides[get_tracking_repository] = lambda: mock_tracking_repo
    app.dependency_overrides[get_sources_repository] = lambda: mock_sources_repo
    app.dependency_overrides[get_database] = lambda: mock_db
    yield TestClient(app)
    set_pipeline(None)
