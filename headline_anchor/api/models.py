"""
Response models for the query API.
"""

from pydantic import BaseModel, Field


class TrackedItemResponse(BaseModel):
    """A tracked feed item and its current anchoring state."""

    id: int
    source_id: int
    source_name: str | None = None
    title: str
    description: str | None = None
    url: str
    fingerprint: str = Field(..., description="sha256-prefixed content fingerprint")
    receipt_id: str | None = Field(
        default=None, description="Ledger receipt for the current fingerprint"
    )
    first_seen_at: str


class ChangeRecordResponse(BaseModel):
    """One recorded content transition."""

    id: int
    item_id: int
    url: str | None = None
    source_name: str | None = None
    old_title: str
    new_title: str
    old_description: str | None = None
    new_description: str | None = None
    old_fingerprint: str
    new_fingerprint: str
    prior_receipt_id: str | None = None
    change_receipt_id: str | None = None
    original_receipt_id: str | None = Field(
        default=None, description="Current receipt of the item the change belongs to"
    )
    detected_at: str


class PageResponse(BaseModel):
    page: int
    limit: int


class TrackedItemsPage(PageResponse):
    data: list[TrackedItemResponse]


class ChangeRecordsPage(PageResponse):
    data: list[ChangeRecordResponse]


class SourceResponse(BaseModel):
    id: int
    name: str
    feed_url: str
    enabled: bool
    poll_interval_seconds: int


class StatsResponse(BaseModel):
    tracked: int
    changes: int
    anchored: int
    sources: int
    uptime_seconds: int


class HealthResponse(BaseModel):
    status: str
    version: str
    database: str
    capacity_state: str = "unknown"
    anchor_queue_depth: int | None = None


class ErrorResponse(BaseModel):
    detail: str
