"""Change record endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query

from headline_anchor.api.dependencies import get_tracking_repository
from headline_anchor.api.models import ChangeRecordResponse, ChangeRecordsPage, ErrorResponse
from headline_anchor.tracking.repository import TrackingRepository
from headline_anchor.tracking.schemas import ChangeRecord

router = APIRouter()


def change_to_response(change: ChangeRecord) -> ChangeRecordResponse:
    return ChangeRecordResponse(
        id=change.id,
        item_id=change.item_id,
        url=change.url,
        source_name=change.source_name,
        old_title=change.old_title,
        new_title=change.new_title,
        old_description=change.old_description,
        new_description=change.new_description,
        old_fingerprint=change.old_fingerprint,
        new_fingerprint=change.new_fingerprint,
        prior_receipt_id=change.prior_receipt_id,
        change_receipt_id=change.change_receipt_id,
        original_receipt_id=change.original_receipt_id,
        detected_at=change.detected_at.isoformat(),
    )


@router.get(
    "/changes",
    response_model=ChangeRecordsPage,
    summary="List detected changes, newest first",
)
async def list_changes(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    source: str | None = Query(default=None, description="Filter by source name"),
    repo: TrackingRepository = Depends(get_tracking_repository),
) -> ChangeRecordsPage:
    changes = await repo.list_changes(page=page, limit=limit, source_name=source)
    return ChangeRecordsPage(
        page=page,
        limit=limit,
        data=[change_to_response(c) for c in changes],
    )


@router.get(
    "/changes/{change_id}",
    response_model=ChangeRecordResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get one change record",
)
async def get_change(
    change_id: int,
    repo: TrackingRepository = Depends(get_tracking_repository),
) -> ChangeRecordResponse:
    change = await repo.get_change(change_id)
    if change is None:
        raise HTTPException(status_code=404, detail="Not found")
    return change_to_response(change)
