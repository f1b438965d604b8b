"""Tests for the headline-anchor CLI."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from headline_anchor.anchoring.sweeper import SweepResult
from headline_anchor.cli import main
from headline_anchor.tracking.schemas import TrackingStats


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def mock_db():
    db = AsyncMock()
    db.fetch = AsyncMock(return_value=[])
    db.execute = AsyncMock(return_value="INSERT 0 1")
    return db


class TestInitDb:
    def test_creates_all_tables(self, runner, mock_db) -> None:
        with patch("headline_anchor.storage.database.Database", return_value=mock_db):
            result = runner.invoke(main, ["init-db"])

        assert result.exit_code == 0, result.output
        assert "Database initialized" in result.output
        statements = [c[0][0] for c in mock_db.execute.call_args_list]
        assert any("sources" in s for s in statements)
        assert any("tracked_items" in s for s in statements)
        mock_db.close.assert_awaited_once()


class TestSeedSources:
    def test_seeds_packaged_defaults(self, runner, mock_db) -> None:
        with patch("headline_anchor.storage.database.Database", return_value=mock_db):
            result = runner.invoke(main, ["seed-sources"])

        assert result.exit_code == 0, result.output
        assert "Seeded" in result.output

    def test_missing_file_rejected(self, runner) -> None:
        result = runner.invoke(main, ["seed-sources", "/nonexistent/sources.json"])
        assert result.exit_code != 0


class TestSweep:
    def test_prints_result(self, runner, mock_db) -> None:
        outcome = SweepResult(pending_items=3, retried_items=2, capacity_exhausted=True)
        with (
            patch("headline_anchor.storage.database.Database", return_value=mock_db),
            patch(
                "headline_anchor.anchoring.sweeper.ReconciliationSweeper.run_once",
                new=AsyncMock(return_value=outcome),
            ),
        ):
            result = runner.invoke(main, ["sweep", "--mock-ledger"])

        assert result.exit_code == 0, result.output
        assert "Items anchored:     2" in result.output
        assert "1 records waiting" in result.output

    def test_requires_ledger_without_mock(self, runner, mock_db, monkeypatch) -> None:
        monkeypatch.delenv("ANCHOR_LEDGER_URL", raising=False)
        with patch("headline_anchor.storage.database.Database", return_value=mock_db):
            result = runner.invoke(main, ["sweep"])

        assert result.exit_code != 0
        assert isinstance(result.exception, ValueError)


class TestStats:
    def test_prints_counts(self, runner, mock_db) -> None:
        with (
            patch("headline_anchor.storage.database.Database", return_value=mock_db),
            patch(
                "headline_anchor.tracking.repository.TrackingRepository.get_stats",
                new=AsyncMock(return_value=TrackingStats(10, 4, 8, 5)),
            ),
        ):
            result = runner.invoke(main, ["stats"])

        assert result.exit_code == 0, result.output
        assert "Tracked items: 10" in result.output
        assert "Anchored:      8" in result.output
