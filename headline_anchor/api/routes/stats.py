"""Aggregate count endpoint."""

import time

from fastapi import APIRouter, Depends, Request

from headline_anchor.api.dependencies import get_tracking_repository
from headline_anchor.api.models import StatsResponse
from headline_anchor.tracking.repository import TrackingRepository

router = APIRouter()


@router.get("/stats", response_model=StatsResponse, summary="Aggregate counts")
async def get_stats(
    request: Request,
    repo: TrackingRepository = Depends(get_tracking_repository),
) -> StatsResponse:
    stats = await repo.get_stats()
    started_at = getattr(request.app.state, "started_at", time.monotonic())
    return StatsResponse(
        tracked=stats.tracked,
        changes=stats.changes,
        anchored=stats.anchored,
        sources=stats.sources,
        uptime_seconds=int(time.monotonic() - started_at),
    )
