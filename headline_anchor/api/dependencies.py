"""
Dependency injection for FastAPI endpoints.
"""

from headline_anchor.services.pipeline_service import PipelineService
from headline_anchor.sources.repository import SourcesRepository
from headline_anchor.storage.database import Database
from headline_anchor.tracking.repository import TrackingRepository

# Global instances (initialized on first request)
_database: Database | None = None
_pipeline: PipelineService | None = None


async def get_database() -> Database:
    """Get a connected Database shared by all requests."""
    global _database

    if _database is None:
        _database = Database()
        await _database.connect()

    return _database


async def get_tracking_repository() -> TrackingRepository:
    return TrackingRepository(await get_database())


async def get_sources_repository() -> SourcesRepository:
    return SourcesRepository(await get_database())


def set_pipeline(pipeline: PipelineService | None) -> None:
    """Register the in-process pipeline so /health can report gate state."""
    global _pipeline
    _pipeline = pipeline


def get_pipeline() -> PipelineService | None:
    return _pipeline


async def cleanup_dependencies() -> None:
    """Close shared resources on shutdown."""
    global _database

    if _database is not None:
        await _database.close()
        _database = None
