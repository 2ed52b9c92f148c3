# paste_service/services/descriptor_store.py
from typing import Optional, Protocol

import redis

from paste_service.core.errors import UpstreamFailure
from paste_service.core.logging_config import logger

KEY_PREFIX = "paste:"


class DescriptorStore(Protocol):
    def get(self, key: str) -> Optional[bytes]: ...

    def put(self, key: str, value: bytes | str, ttl_seconds: int) -> None: ...

    def delete(self, key: str) -> None: ...


class RedisDescriptorStore:
    """
    Paste index in redis: één key per paste, TTL = expiratie van de paste.
    Alleen single-key get/set/delete, geen transacties.
    """

    def __init__(self, client: redis.Redis, prefix: str = KEY_PREFIX):
        self.client = client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get(self, key: str) -> Optional[bytes]:
        try:
            return self.client.get(self._key(key))
        except redis.RedisError as e:
            logger.error("index_call_failed", op="get", key=key, error=repr(e))
            raise UpstreamFailure() from e

    def put(self, key: str, value: bytes | str, ttl_seconds: int) -> None:
        try:
            self.client.set(self._key(key), value, ex=max(1, int(ttl_seconds)))
        except redis.RedisError as e:
            logger.error("index_call_failed", op="put", key=key, error=repr(e))
            raise UpstreamFailure() from e

    def delete(self, key: str) -> None:
        try:
            self.client.delete(self._key(key))
        except redis.RedisError as e:
            logger.error("index_call_failed", op="delete", key=key, error=repr(e))
            raise UpstreamFailure() from e
