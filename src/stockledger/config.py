"""Application configuration helpers."""

from __future__ import annotations

from functools import lru_cache
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

NegativeStockPolicy = Literal["allow", "reject"]


class Settings(BaseSettings):
    """Runtime configuration loaded from ``STOCKLEDGER_*`` environment variables."""

    model_config = SettingsConfigDict(env_prefix="STOCKLEDGER_", env_file=".env", extra="ignore")

    app_name: str = "Stock Ledger"
    api_prefix: str = "/api"
    database_url: str = Field(
        default="sqlite:///./stockledger.db",
        description="SQLAlchemy compatible database URL",
    )
    echo_sql: bool = False
    host: str = "127.0.0.1"
    port: int = 8000
    reload: bool = False
    log_level: str = "info"
    log_json: bool = False
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    negative_stock_policy: NegativeStockPolicy = Field(
        default="allow",
        description="Whether validating an operation may drive on-hand stock below zero",
    )
    seed_data: bool = Field(default=True, description="Seed default operation types on startup")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()
