"""Configuration settings for tabular-store."""

import logging
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreSettings(BaseSettings):
    """Settings loaded from ``TABULAR_STORE_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TABULAR_STORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "WARNING"
    api_title: str = "Tabular Store API"
    recent_posts_limit: int = 10


@lru_cache
def get_settings() -> StoreSettings:
    """Get cached settings instance."""
    return StoreSettings()


def configure_logging(level: str = "WARNING") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
