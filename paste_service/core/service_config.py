# paste_service/core/service_config.py
from __future__ import annotations

import json
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from paste_service.core.errors import ConfigurationError
from paste_service.core.logging_config import logger
from paste_service.core.settings import Settings

MASK = "***"


class StorageProfile(BaseModel):
    name: str = Field(..., min_length=1)
    endpoint: str
    upload_endpoint: Optional[str] = None
    download_endpoint: Optional[str] = None
    region: str = "auto"
    bucket_name: str
    access_key_id: str
    secret_access_key: str
    max_file_size: int = Field(..., gt=0)
    max_ttl: int = Field(2419200, gt=0)  # seconden, 28 dagen

    @property
    def upload_url_base(self) -> str:
        return self.upload_endpoint or self.endpoint

    @property
    def download_url_base(self) -> str:
        return self.download_endpoint or self.endpoint


class ServiceConfig(BaseModel):
    """Runtime config; wordt per request geladen en expliciet aan de engine gegeven."""

    uuid_length: int = Field(4, ge=1, le=64)
    service_url: str = "http://localhost:8000"
    storages: list[StorageProfile]
    config_auth_token: Optional[str] = None
    large_proxy_threshold: int = Field(100 * 1024 * 1024, ge=0)

    @field_validator("storages")
    @classmethod
    def require_default_storage(cls, v: list[StorageProfile]) -> list[StorageProfile]:
        if not any(ent.name == "default" for ent in v):
            raise ValueError("Missing default storage configuration.")
        return v

    def filter_storage(self, storage_name: str) -> Optional[StorageProfile]:
        # Bij dubbele namen wint de laatste entry
        filtered = [ent for ent in self.storages if ent.name == storage_name]
        return filtered[-1] if filtered else None

    def check_auth(self, token: Optional[str]) -> bool:
        return bool(self.config_auth_token) and token == self.config_auth_token

    def redacted(self) -> dict:
        data = self.model_dump()
        data["config_auth_token"] = MASK
        for ent in data["storages"]:
            ent["access_key_id"] = MASK
            ent["secret_access_key"] = MASK
        return data


class StorageResolver:
    """Storage location resolver: logische naam -> StorageProfile (of None)."""

    def __init__(self, config: ServiceConfig):
        self.config = config

    def resolve(self, location: Optional[str]) -> Optional[StorageProfile]:
        return self.config.filter_storage(location or "default")

    def require(self, location: Optional[str]) -> StorageProfile:
        profile = self.resolve(location)
        if profile is None:
            raise ConfigurationError()
        return profile


def config_from_settings(settings: Settings) -> ServiceConfig:
    try:
        return ServiceConfig(
            uuid_length=settings.UUID_LENGTH,
            service_url=settings.SERVICE_URL.rstrip("/"),
            storages=settings.STORAGES,
            config_auth_token=settings.CONFIG_AUTH_TOKEN,
            large_proxy_threshold=settings.LARGE_PROXY_THRESHOLD,
        )
    except ValidationError as e:
        logger.error("service_config_invalid", source="env", errors=e.error_count())
        raise ConfigurationError("Unable to load service config.") from e


def load_service_config(redis_client, settings: Settings) -> ServiceConfig:
    """
    Laad de runtime config uit redis (CONFIG_KEY); valt terug op de env Settings
    als er (nog) geen config in redis staat.
    """
    raw = redis_client.get(settings.CONFIG_KEY)
    if raw is None:
        return config_from_settings(settings)
    try:
        return ServiceConfig.model_validate(json.loads(raw))
    except (ValueError, ValidationError) as e:
        logger.error("service_config_invalid", source="redis", key=settings.CONFIG_KEY, error=str(e))
        raise ConfigurationError("Invalid service config.") from e


def save_service_config(redis_client, settings: Settings, config: ServiceConfig) -> None:
    redis_client.set(settings.CONFIG_KEY, config.model_dump_json())
    logger.info("service_config_updated", key=settings.CONFIG_KEY, storages=len(config.storages))
