"""Sources: database-backed feed source management."""

from headline_anchor.sources.config import SourcesConfig
from headline_anchor.sources.repository import SourcesRepository
from headline_anchor.sources.schemas import Source
from headline_anchor.sources.service import SourcesService

__all__ = [
    "Source",
    "SourcesConfig",
    "SourcesRepository",
    "SourcesService",
]
