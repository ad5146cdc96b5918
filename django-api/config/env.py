"""Environment-backed settings read once at startup."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Values Django's settings module pulls from the environment."""

    debug: bool = Field(default=False)
    secret_key: str = Field(default="insecure-development-key")
    allowed_hosts: list[str] = Field(default_factory=lambda: ["localhost", "127.0.0.1"])
    environment: Literal["local", "dev", "staging", "prod"] = Field(default="local")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    db_engine: Literal["sqlite", "postgresql"] = Field(default="sqlite")
    db_name: str = Field(default="pricing.sqlite3")
    db_user: str = Field(default="")
    db_password: str = Field(default="")
    db_host: str = Field(default="localhost")
    db_port: int = Field(default=5432)
    pricing_cache_ttl_seconds: int = Field(default=300, ge=0)
    default_currency: str = Field(default="TND", min_length=3, max_length=3)

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"), env_prefix="PRICING_", extra="ignore"
    )


@lru_cache
def get_settings() -> AppSettings:
    """Return cached environment settings."""

    return AppSettings()
