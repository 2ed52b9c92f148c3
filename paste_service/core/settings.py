# paste_service/core/settings.py
import os
from functools import lru_cache
from typing import Any, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # === Algemene app settings ===
    app_env: str = "local"  # local | development | production
    SERVICE_URL: str = "http://localhost:8000"

    # === Paste index (redis) ===
    REDIS_URL: str = "redis://localhost:6379/0"
    CONFIG_KEY: str = Field("service:config", description="Redis key met de runtime config")

    # === Runtime config defaults (als er niets in redis staat) ===
    UUID_LENGTH: int = 4
    # JSON lijst met storage profielen, bv:
    # STORAGES='[{"name": "default", "endpoint": "https://s3...", ...}]'
    STORAGES: list[dict[str, Any]] = Field(default_factory=list)
    CONFIG_AUTH_TOKEN: Optional[str] = None
    LARGE_PROXY_THRESHOLD: int = 100 * 1024 * 1024  # 100 MiB
    MAX_INLINE_UPLOAD_BYTES: int = 10 * 1024 * 1024  # 10 MiB request body

    # === HTTP ===
    ALLOWED_ORIGINS: list[str] = ["*"]
    RATE_LIMIT_CREATE: str = "60/minute"

    # === Logging ===
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton Settings instance met simpele env-overrides."""
    s = Settings()

    env = os.getenv("ENVIRONMENT", s.app_env).lower()
    if env == "production":
        s.log_level = "WARNING"
    elif env == "development":
        s.log_level = "DEBUG"

    return s
