"""Feed ingestion - fetching, normalization and polling."""

from headline_anchor.ingestion.normalizer import compute_fingerprint, normalize_item
from headline_anchor.ingestion.schemas import NormalizedItem, RawFeedItem

__all__ = [
    "NormalizedItem",
    "RawFeedItem",
    "compute_fingerprint",
    "normalize_item",
]
