"""Configuration for the sources service."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SourcesConfig(BaseSettings):
    """Settings for feed source seeding."""

    model_config = SettingsConfigDict(
        env_prefix="SOURCES_",
        case_sensitive=False,
        extra="ignore",
    )

    seed_on_init: bool = Field(
        default=True,
        description="Upsert sources from the seed JSON on pipeline start",
    )
    seed_file: Path | None = Field(
        default=None,
        description="Seed JSON path (defaults to the packaged seed_sources.json)",
    )
    default_poll_interval_seconds: int = Field(
        default=300,
        ge=10,
        description="Poll interval for seed entries that do not specify one",
    )
