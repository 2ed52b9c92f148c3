from __future__ import annotations

from functools import lru_cache
from typing import Callable

import redis
from fastapi import BackgroundTasks, Depends

from paste_service.core.errors import InvalidUUID
from paste_service.core.service_config import ServiceConfig, StorageProfile, load_service_config
from paste_service.core.settings import Settings, get_settings
from paste_service.services.descriptor_store import DescriptorStore, RedisDescriptorStore
from paste_service.services.object_store import ObjectStore, S3ObjectStore
from paste_service.services.paste_engine import PasteEngine, now_ms


@lru_cache(maxsize=1)
def _redis_client(url: str) -> redis.Redis:
    return redis.Redis.from_url(url)


def get_redis(settings: Settings = Depends(get_settings)) -> redis.Redis:
    return _redis_client(settings.REDIS_URL)


def get_service_config(
    redis_client: redis.Redis = Depends(get_redis),
    settings: Settings = Depends(get_settings),
) -> ServiceConfig:
    """Runtime config wordt per request geladen (geen globale mutable state)."""
    return load_service_config(redis_client, settings)


def get_descriptor_store(redis_client: redis.Redis = Depends(get_redis)) -> DescriptorStore:
    return RedisDescriptorStore(redis_client)


def get_object_store_factory() -> Callable[[StorageProfile], ObjectStore]:
    return S3ObjectStore


def get_clock() -> Callable[[], int]:
    return now_ms


def get_engine(
    background: BackgroundTasks,
    config: ServiceConfig = Depends(get_service_config),
    index: DescriptorStore = Depends(get_descriptor_store),
    object_store_factory: Callable[[StorageProfile], ObjectStore] = Depends(get_object_store_factory),
    clock: Callable[[], int] = Depends(get_clock),
) -> PasteEngine:
    # access count / cache writes lopen na de response via BackgroundTasks
    return PasteEngine(
        config,
        index,
        object_store_factory=object_store_factory,
        clock=clock,
        defer=background.add_task,
    )


def check_uuid(uuid: str, engine: PasteEngine) -> str:
    if not engine.ids.is_valid(uuid):
        raise InvalidUUID()
    return uuid
