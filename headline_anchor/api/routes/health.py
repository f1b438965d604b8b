"""
Health check endpoint.
"""

import structlog
from fastapi import APIRouter, Depends

from headline_anchor import __version__
from headline_anchor.api.dependencies import get_database, get_pipeline
from headline_anchor.api.models import HealthResponse
from headline_anchor.storage.database import Database

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.get("/health", response_model=HealthResponse, summary="Service health")
async def health(db: Database = Depends(get_database)) -> HealthResponse:
    try:
        db_healthy = await db.health_check()
    except Exception as e:
        logger.warning("Database health check failed", error=str(e))
        db_healthy = False

    response = HealthResponse(
        status="healthy" if db_healthy else "degraded",
        version=__version__,
        database="healthy" if db_healthy else "unhealthy",
    )

    pipeline = get_pipeline()
    if pipeline is not None:
        response.capacity_state = pipeline.gate.state.value
        response.anchor_queue_depth = pipeline.gate.queue_depth

    return response
