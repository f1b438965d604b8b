"""Read-only query API over tracked items, changes and sources."""

from headline_anchor.api.app import create_app

__all__ = ["create_app"]
