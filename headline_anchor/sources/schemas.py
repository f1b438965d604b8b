"""Data models for the sources module."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Source:
    """A configured syndication feed.

    Identified by its unique name and feed URL. Sources are only created or
    updated from external configuration; disabling one stops its poller but
    keeps every item it has produced.
    """

    name: str
    feed_url: str
    poll_interval_seconds: int = 300
    enabled: bool = True
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
