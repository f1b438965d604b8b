"""Tests for SourcesService."""

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from headline_anchor.sources.config import SourcesConfig
from headline_anchor.sources.service import SourcesService


@pytest.fixture
def config() -> SourcesConfig:
    return SourcesConfig(default_poll_interval_seconds=120)


@pytest.fixture
def service(mock_database: AsyncMock, config: SourcesConfig) -> SourcesService:
    return SourcesService(mock_database, config)


class TestSeedFromJson:
    """Tests for loading sources from JSON."""

    @pytest.mark.asyncio
    async def test_seeds_from_file(self, service: SourcesService, tmp_path: Path) -> None:
        seed = tmp_path / "sources.json"
        seed.write_text(
            json.dumps(
                [
                    {"name": "BBC", "feed_url": "https://bbc.example.com/rss"},
                    {
                        "name": "NPR",
                        "feedUrl": "https://npr.example.com/rss",
                        "pollInterval": 900,
                        "enabled": False,
                    },
                ]
            )
        )

        count = await service.seed_from_json(seed)

        assert count == 2
        args = service.repository._db.execute.call_args[0]
        assert args[1] == ["BBC", "NPR"]
        assert args[2] == ["https://bbc.example.com/rss", "https://npr.example.com/rss"]
        assert args[3] == [120, 900]
        assert args[4] == [True, False]

    @pytest.mark.asyncio
    async def test_default_seed_file_is_packaged(self, service: SourcesService) -> None:
        count = await service.seed_from_json()

        assert count >= 1
        names = service.repository._db.execute.call_args[0][1]
        assert "BBC News" in names

    @pytest.mark.asyncio
    async def test_configured_seed_file(self, mock_database: AsyncMock, tmp_path: Path) -> None:
        seed = tmp_path / "custom.json"
        seed.write_text(json.dumps([{"name": "X", "feed_url": "https://x.example.com/rss"}]))
        service = SourcesService(mock_database, SourcesConfig(seed_file=seed))

        assert await service.seed_from_json() == 1


class TestEnsureSeeded:
    """Tests for startup seeding."""

    @pytest.mark.asyncio
    async def test_skipped_when_disabled(self, mock_database: AsyncMock) -> None:
        service = SourcesService(mock_database, SourcesConfig(seed_on_init=False))

        await service.ensure_seeded()

        mock_database.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_seeds_when_enabled(self, service: SourcesService) -> None:
        await service.ensure_seeded()

        assert "unnest" in service.repository._db.execute.call_args[0][0]


class TestGetEnabledSources:
    """Tests for the poller-facing accessor."""

    @pytest.mark.asyncio
    async def test_delegates_to_repository(self, service: SourcesService) -> None:
        assert await service.get_enabled_sources() == []
        assert "enabled = TRUE" in service.repository._db.fetch.call_args[0][0]
