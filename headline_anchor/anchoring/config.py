"""Configuration for ledger anchoring and reconciliation."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AnchoringConfig(BaseSettings):
    """Settings for the ledger client and the reconciliation sweeper."""

    model_config = SettingsConfigDict(
        env_prefix="ANCHOR_",
        case_sensitive=False,
        extra="ignore",
    )

    ledger_url: str | None = Field(
        default=None,
        description="Base URL of the ledger-write service",
    )
    ledger_api_key: str | None = Field(
        default=None,
        description="Bearer token for the ledger-write service",
    )
    ledger_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for a single ledger write",
    )
    sweep_interval_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Period of the reconciliation sweep",
    )
    sweep_on_startup: bool = Field(
        default=True,
        description="Run one reconciliation pass immediately at startup",
    )

    @property
    def ledger_configured(self) -> bool:
        return bool(self.ledger_url)
