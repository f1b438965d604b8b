"""Data models for tracked feed items and their change history."""

import enum
from dataclasses import dataclass, field
from datetime import datetime


class ChangeKind(str, enum.Enum):
    """Classification of a normalized item against stored state."""

    NEW = "new"
    CHANGED = "changed"
    UNCHANGED = "unchanged"


@dataclass
class TrackedItem:
    """One feed item ever observed, keyed by its URL.

    ``fingerprint`` always matches the current title/description pair and
    ``receipt_id`` (when set) is the ledger receipt for that fingerprint.
    A null receipt means the current state is not yet anchored.
    """

    source_id: int
    title: str
    description: str | None
    url: str
    fingerprint: str
    first_seen_at: datetime
    receipt_id: str | None = None
    id: int | None = None
    created_at: datetime | None = None
    source_name: str | None = None

    @property
    def is_anchored(self) -> bool:
        return self.receipt_id is not None


@dataclass
class ChangeRecord:
    """Append-only audit row for one fingerprint transition of a TrackedItem.

    ``prior_receipt_id`` is the item's receipt at detection time and is what
    the change-event commitment references. ``change_receipt_id`` is the
    receipt of the change-event itself and is the only field ever written
    after insert.
    """

    item_id: int
    old_title: str
    new_title: str
    old_description: str | None
    new_description: str | None
    old_fingerprint: str
    new_fingerprint: str
    detected_at: datetime
    prior_receipt_id: str | None = None
    change_receipt_id: str | None = None
    id: int | None = None
    # Joined projections (read-only accessors)
    url: str | None = None
    original_receipt_id: str | None = None
    source_name: str | None = None


@dataclass
class DetectionSummary:
    """Outcome counts for one detector pass over a source's items."""

    source_name: str
    new: int = 0
    changed: int = 0
    unchanged: int = 0
    failed: int = 0
    kinds: list[ChangeKind] = field(default_factory=list, repr=False)

    @property
    def total(self) -> int:
        return self.new + self.changed + self.unchanged + self.failed

    def record(self, kind: ChangeKind) -> None:
        self.kinds.append(kind)
        if kind is ChangeKind.NEW:
            self.new += 1
        elif kind is ChangeKind.CHANGED:
            self.changed += 1
        else:
            self.unchanged += 1


@dataclass
class TrackingStats:
    """Aggregate counts exposed to read-only collaborators."""

    tracked: int
    changes: int
    anchored: int
    sources: int
