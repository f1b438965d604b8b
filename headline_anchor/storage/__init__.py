"""Storage layer - asyncpg connection management."""

from headline_anchor.storage.database import Database

__all__ = ["Database"]
