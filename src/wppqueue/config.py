"""Application configuration management."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="WPPQ_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage
    db_path: Path = Path.home() / ".wppqueue" / "wppqueue.db"

    # API server
    api_host: str = "127.0.0.1"
    api_port: int = 8080
    cors_origins: list[str] = ["*"]

    # Header carrying the caller's account id, set by the identity proxy
    account_header: str = "X-Account-Id"

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
