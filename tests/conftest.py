import hashlib

import pytest
from fastapi.testclient import TestClient

from paste_service.core.errors import UpstreamFailure
from paste_service.core.rate_limit import limiter
from paste_service.core.service_config import ServiceConfig, StorageProfile
from paste_service.dependencies import (
    get_clock,
    get_descriptor_store,
    get_object_store_factory,
    get_redis,
    get_service_config,
)
from paste_service.main import app
from paste_service.services.object_store import ObjectNotFound, StoredObject, sha256_hex_to_b64
from paste_service.services.paste_engine import PasteEngine

NOW = 1_700_000_000_000  # epoch ms
MiB = 1024 * 1024


# -------------------------
# In-memory doubles
# -------------------------
class MemoryObjectStore:
    """ObjectStore double: bytes per key, presigned URLs zijn nep maar uniek per call."""

    def __init__(self):
        self.objects = {}
        self.presign_get_calls = 0
        self.fail_put = False
        self.fail_delete = False

    def put(self, key, data, content_type=None):
        if self.fail_put:
            raise UpstreamFailure()
        self.objects[key] = (bytes(data), content_type)

    def get(self, key, if_none_match=None):
        if key not in self.objects:
            raise ObjectNotFound(key)
        data, content_type = self.objects[key]
        etag = '"%s"' % hashlib.md5(data).hexdigest()
        if if_none_match == etag:
            return StoredObject(body=None, etag=etag, not_modified=True)
        return StoredObject(body=iter([data]), size=len(data), content_type=content_type, etag=etag)

    def head(self, key):
        if key not in self.objects:
            raise ObjectNotFound(key)
        return len(self.objects[key][0])

    def delete(self, key):
        if self.fail_delete:
            raise UpstreamFailure()
        self.objects.pop(key, None)

    def presign_put(self, key, content_length, sha256_hex, expires_in):
        headers = {
            "Content-Length": str(content_length),
            "x-amz-checksum-sha256": sha256_hex_to_b64(sha256_hex),
        }
        return f"https://s3.test/pastes/{key}?X-Amz-Expires={expires_in}", headers

    def presign_get(self, key, expires_in, response_content_type=None, response_content_disposition=None):
        self.presign_get_calls += 1
        return f"https://s3.test/pastes/{key}?X-Amz-Expires={expires_in}&n={self.presign_get_calls}"


class MemoryDescriptorStore:
    def __init__(self):
        self.values = {}
        self.ttls = {}

    def get(self, key):
        value = self.values.get(key)
        return value.encode() if isinstance(value, str) else value

    def put(self, key, value, ttl_seconds):
        self.values[key] = value
        self.ttls[key] = ttl_seconds

    def delete(self, key):
        self.values.pop(key, None)
        self.ttls.pop(key, None)


class FakeRedis:
    """Alleen wat de service gebruikt: get / set(ex=) / delete."""

    def __init__(self):
        self.data = {}
        self.expiry = {}

    def get(self, key):
        value = self.data.get(key)
        return value.encode() if isinstance(value, str) else value

    def set(self, key, value, ex=None):
        self.data[key] = value
        self.expiry[key] = ex
        return True

    def delete(self, key):
        self.expiry.pop(key, None)
        return 1 if self.data.pop(key, None) is not None else 0


class FrozenClock:
    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += int(seconds * 1000)


def make_profile(name, max_file_size, **extra):
    fields = {
        "endpoint": "https://s3.test",
        "region": "us-east-1",
        "bucket_name": "pastes",
        "access_key_id": "AKIDTEST",
        "secret_access_key": "secret",
        **extra,
    }
    return StorageProfile(name=name, max_file_size=max_file_size, **fields)


# -------------------------
# Fixtures
# -------------------------
@pytest.fixture
def config():
    return ServiceConfig(
        uuid_length=4,
        service_url="https://paste.test",
        storages=[
            make_profile("default", 10 * MiB),
            make_profile("large", 1024 * MiB),
            make_profile("tiny", 8),
        ],
        config_auth_token="secret-token",
        large_proxy_threshold=100 * MiB,
    )


@pytest.fixture
def object_store():
    return MemoryObjectStore()


@pytest.fixture
def index():
    return MemoryDescriptorStore()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def engine(config, index, object_store, clock):
    # zonder defer: access count / cache writes gebeuren direct
    return PasteEngine(config, index, object_store_factory=lambda profile: object_store, clock=clock)


@pytest.fixture
def client(config, index, object_store, clock, fake_redis):
    limiter.reset()
    app.dependency_overrides[get_service_config] = lambda: config
    app.dependency_overrides[get_descriptor_store] = lambda: index
    app.dependency_overrides[get_object_store_factory] = lambda: (lambda profile: object_store)
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_redis] = lambda: fake_redis
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
