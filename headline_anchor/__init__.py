"""Headline Anchor - tamper-evident tracking of syndicated feed items."""

__version__ = "0.1.0"
