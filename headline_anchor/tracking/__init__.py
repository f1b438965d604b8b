"""Tracked items, change history and change detection."""

from headline_anchor.tracking.repository import TrackingRepository
from headline_anchor.tracking.schemas import (
    ChangeKind,
    ChangeRecord,
    DetectionSummary,
    TrackedItem,
    TrackingStats,
)

__all__ = [
    "ChangeKind",
    "ChangeRecord",
    "DetectionSummary",
    "TrackedItem",
    "TrackingRepository",
    "TrackingStats",
]
