"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    database_url: str = "sqlite+aiosqlite:///./data/app.db"
    storage_path: str = "./static"
    session_backend: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379"
    session_cookie_name: str = "session_id"
    session_max_age_days: int = 90
    session_cookie_secure: bool = False  # True behind HTTPS
    max_upload_mb: int = 32
    latest_books_limit: int = 12
    popular_tags_limit: int = 20
    log_level: str = "INFO"

    model_config = {"env_file": ".env"}

    @property
    def session_max_age_seconds(self) -> int:
        return self.session_max_age_days * 24 * 60 * 60

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb << 20


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
