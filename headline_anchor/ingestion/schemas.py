"""Data models for feed items before and after normalization."""

from dataclasses import dataclass, field


@dataclass
class RawFeedItem:
    """One entry as delivered by the feed-fetch capability.

    ``summary_variants`` holds the alternative description fields in
    preference order (plain-text snippet, full content, summary).
    """

    title: str | None = None
    link: str | None = None
    guid: str | None = None
    summary_variants: list[str | None] = field(default_factory=list)


@dataclass(frozen=True)
class NormalizedItem:
    """A feed item reduced to its canonical content and fingerprint."""

    title: str
    description: str | None
    url: str
    fingerprint: str
