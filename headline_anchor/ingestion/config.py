"""Configuration for feed fetching and normalization."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FeedConfig(BaseSettings):
    """Settings for the feed poller and normalizer."""

    model_config = SettingsConfigDict(
        env_prefix="FEED_",
        case_sensitive=False,
        extra="ignore",
    )

    fetch_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Timeout for a single feed fetch",
    )
    stagger_seconds: float = Field(
        default=5.0,
        ge=0,
        description="Initial fetch delay multiplied by the source's index",
    )
    user_agent: str = Field(
        default="HeadlineAnchor/1.0",
        description="User-Agent header sent with feed requests",
    )
    description_max_length: int = Field(
        default=1024,
        ge=1,
        description="Descriptions are truncated to this many characters before hashing",
    )
