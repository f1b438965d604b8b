"""
Feed item normalization and content fingerprinting.

A fingerprint is the SHA-256 digest of ``title + "|" + description`` (UTF-8),
rendered as ``"sha256:<hex>"``. Identical (title, description) pairs always
produce the same fingerprint, so it doubles as the content-addressed identity
used for change detection and ledger anchoring.
"""

import hashlib
import logging
from collections.abc import Iterable
from urllib.parse import urlparse

from headline_anchor.ingestion.schemas import NormalizedItem, RawFeedItem

logger = logging.getLogger(__name__)

FINGERPRINT_PREFIX = "sha256:"
DEFAULT_DESCRIPTION_MAX_LENGTH = 1024


def compute_fingerprint(title: str, description: str | None) -> str:
    """
    Compute the content fingerprint for a (title, description) pair.

    Args:
        title: Normalized title
        description: Normalized description, or None

    Returns:
        Prefixed hex digest, e.g. ``"sha256:9f86d0..."``
    """
    payload = f"{title}|{description or ''}".encode("utf-8")
    return FINGERPRINT_PREFIX + hashlib.sha256(payload).hexdigest()


def strip_fingerprint_prefix(fingerprint: str) -> str:
    """Return the bare hex digest of a prefixed fingerprint."""
    if fingerprint.startswith(FINGERPRINT_PREFIX):
        return fingerprint[len(FINGERPRINT_PREFIX):]
    return fingerprint


def is_degenerate_link(link: str) -> bool:
    """True for links that cannot identify a single item (e.g. a bare domain)."""
    parsed = urlparse(link)
    if not parsed.scheme or not parsed.netloc:
        return False
    return parsed.path in ("", "/") and not parsed.query and not parsed.fragment


def resolve_url(item: RawFeedItem) -> str:
    """
    Resolve the stable identity URL of a feed item.

    Prefers the item's link; falls back to the feed-supplied guid when the
    link is missing or degenerate. Returns an empty string when neither
    yields a usable identity.
    """
    link = (item.link or "").strip()
    guid = (item.guid or "").strip()

    if link and not is_degenerate_link(link):
        return link
    if guid:
        return guid
    return ""


def select_description(
    variants: Iterable[str | None],
    max_length: int = DEFAULT_DESCRIPTION_MAX_LENGTH,
) -> str | None:
    """First non-empty variant, trimmed and truncated to max_length."""
    for variant in variants:
        text = (variant or "").strip()
        if text:
            return text[:max_length].strip()
    return None


def normalize_item(
    item: RawFeedItem,
    max_description_length: int = DEFAULT_DESCRIPTION_MAX_LENGTH,
) -> NormalizedItem | None:
    """
    Normalize a raw feed item.

    Returns:
        NormalizedItem, or None when the item has no title or no usable URL
    """
    title = (item.title or "").strip()
    url = resolve_url(item)
    if not title or not url:
        return None

    description = select_description(item.summary_variants, max_description_length)
    return NormalizedItem(
        title=title,
        description=description,
        url=url,
        fingerprint=compute_fingerprint(title, description),
    )


def normalize_items(
    items: Iterable[RawFeedItem],
    max_description_length: int = DEFAULT_DESCRIPTION_MAX_LENGTH,
) -> list[NormalizedItem]:
    """Normalize a batch, dropping skipped items and preserving feed order."""
    normalized: list[NormalizedItem] = []
    skipped = 0
    for item in items:
        result = normalize_item(item, max_description_length)
        if result is None:
            skipped += 1
            continue
        normalized.append(result)

    if skipped:
        logger.debug("Skipped %d feed items without title or URL", skipped)
    return normalized
