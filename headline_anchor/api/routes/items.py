"""Tracked item endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query

from headline_anchor.api.dependencies import get_tracking_repository
from headline_anchor.api.models import (
    ChangeRecordResponse,
    ErrorResponse,
    TrackedItemResponse,
    TrackedItemsPage,
)
from headline_anchor.api.routes.changes import change_to_response
from headline_anchor.tracking.repository import TrackingRepository
from headline_anchor.tracking.schemas import TrackedItem

router = APIRouter()


def item_to_response(item: TrackedItem) -> TrackedItemResponse:
    return TrackedItemResponse(
        id=item.id,
        source_id=item.source_id,
        source_name=item.source_name,
        title=item.title,
        description=item.description,
        url=item.url,
        fingerprint=item.fingerprint,
        receipt_id=item.receipt_id,
        first_seen_at=item.first_seen_at.isoformat(),
    )


@router.get(
    "/items",
    response_model=TrackedItemsPage,
    summary="List tracked items, newest first",
)
async def list_items(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    source: str | None = Query(default=None, description="Filter by source name"),
    repo: TrackingRepository = Depends(get_tracking_repository),
) -> TrackedItemsPage:
    items = await repo.list_items(page=page, limit=limit, source_name=source)
    return TrackedItemsPage(
        page=page,
        limit=limit,
        data=[item_to_response(i) for i in items],
    )


@router.get(
    "/items/{item_id}",
    response_model=TrackedItemResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get one tracked item",
)
async def get_item(
    item_id: int,
    repo: TrackingRepository = Depends(get_tracking_repository),
) -> TrackedItemResponse:
    item = await repo.get_item(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Not found")
    return item_to_response(item)


@router.get(
    "/items/{item_id}/changes",
    response_model=list[ChangeRecordResponse],
    responses={404: {"model": ErrorResponse}},
    summary="Change history of one tracked item",
)
async def get_item_changes(
    item_id: int,
    repo: TrackingRepository = Depends(get_tracking_repository),
) -> list[ChangeRecordResponse]:
    item = await repo.get_item(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Not found")
    changes = await repo.get_changes_for_item(item_id)
    return [change_to_response(c) for c in changes]
