"""
Configuration and settings for the PT-Log service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DB_TYPE_ALIASES = {
    "oracle": "oracle",
    "embedded": "embedded",
    "h2": "embedded",
    "sqlite": "embedded",
}


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="")
    cors_origins: list[str] = Field(default=["*"])
    log_level: str = Field(default="INFO")

    # Backend selection
    db_type: Literal["oracle", "embedded"] = Field(default="oracle")

    # Oracle (production)
    oracle_url: Optional[str] = Field(default=None)
    oracle_username: Optional[str] = Field(default=None)
    oracle_password: Optional[SecretStr] = Field(default=None)
    oracle_auto_init: bool = Field(default=False)

    # Embedded fallback (SQLite file)
    embedded_file_path: str = Field(default="./data/ptlog")
    embedded_auto_init: bool = Field(default=True)

    # Connection pool
    max_pool_size: int = Field(default=10, ge=1)
    min_idle: int = Field(default=2, ge=0)
    connection_timeout_ms: int = Field(default=30000, ge=1)
    idle_timeout_ms: int = Field(default=600000, ge=0)
    max_lifetime_ms: int = Field(default=1800000, ge=0)
    statement_cache_size: int = Field(default=250, ge=0)

    # Timestamps without an explicit zone are read in this zone.
    timezone: str = Field(default="Europe/Stockholm")

    @field_validator("db_type", mode="before")
    @classmethod
    def normalize_db_type(cls, v: object) -> object:
        if isinstance(v, str):
            key = v.strip().lower()
            if key in DB_TYPE_ALIASES:
                return DB_TYPE_ALIASES[key]
        return v

    @model_validator(mode="after")
    def check_pool_bounds(self) -> "Settings":
        if self.min_idle > self.max_pool_size:
            raise ValueError("min_idle cannot exceed max_pool_size")
        return self

    @property
    def connection_timeout_seconds(self) -> float:
        return self.connection_timeout_ms / 1000

    @property
    def idle_timeout_seconds(self) -> float:
        return self.idle_timeout_ms / 1000

    @property
    def max_lifetime_seconds(self) -> int:
        # pool_recycle=-1 disables recycling in SQLAlchemy
        return self.max_lifetime_ms // 1000 if self.max_lifetime_ms else -1


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
