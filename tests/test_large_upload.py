import hashlib
import json

import pytest

from paste_service.core.errors import LimitExceeded, PreconditionFailed, ValidationFailed
from paste_service.models.paste import PasteType
from paste_service.services.paste_engine import (
    DEFAULT_RETENTION_SECONDS,
    PENDING_TTL_SECONDS,
    PRESIGN_PUT_EXPIRES,
    PasteEngine,
)

from conftest import NOW

CONTENT = b"x" * 2048
HASH = hashlib.sha256(CONTENT).hexdigest()


def _start(engine, **kwargs):
    params = dict(file_size=len(CONTENT), file_hash=HASH, title="big.bin", mime_type="application/octet-stream")
    params.update(kwargs)
    return engine.create_large_upload(**params)


def test_create_returns_ticket_and_pending_descriptor(engine, index):
    ticket = _start(engine)

    assert ticket.expiration == NOW + PRESIGN_PUT_EXPIRES * 1000
    assert ticket.upload_url.startswith("https://s3.test/pastes/" + ticket.uuid)
    assert ticket.request_headers["Content-Length"] == "2048"
    assert "x-amz-checksum-sha256" in ticket.request_headers

    d = engine.info(ticket.uuid)
    assert d.paste_type is PasteType.large_paste
    assert d.upload_pending
    assert d.expired_at == NOW + PENDING_TTL_SECONDS * 1000
    assert index.ttls[ticket.uuid] == PENDING_TTL_SECONDS


def test_pending_paste_is_not_readable_or_mutable(engine):
    ticket = _start(engine)

    with pytest.raises(PreconditionFailed):
        engine.read(ticket.uuid)
    with pytest.raises(PreconditionFailed):
        engine.update_metadata(ticket.uuid, None, {"title": "x"})
    with pytest.raises(PreconditionFailed):
        engine.delete(ticket.uuid)


def test_complete_without_upload_stays_pending(engine):
    ticket = _start(engine)

    with pytest.raises(ValidationFailed) as exc:
        engine.complete_upload(ticket.uuid)

    assert exc.value.message == "This paste is not finishing upload. (0 != 2048)"
    assert engine.info(ticket.uuid).upload_pending


def test_complete_after_requested_expiry_falls_back_to_retention(engine, object_store, index, clock):
    ticket = _start(engine, expired_at=NOW + 3600 * 1000)
    object_store.put(ticket.uuid, CONTENT)
    clock.advance(7200)

    d = engine.complete_upload(ticket.uuid)

    assert d.expired_at == clock() + DEFAULT_RETENTION_SECONDS * 1000
    assert index.ttls[ticket.uuid] == DEFAULT_RETENTION_SECONDS


def test_complete_is_retryable_after_correct_upload(engine, object_store, index, clock):
    ticket = _start(engine)
    object_store.put(ticket.uuid, CONTENT[:100])

    with pytest.raises(ValidationFailed) as exc:
        engine.complete_upload(ticket.uuid)
    assert "(100 != 2048)" in exc.value.message
    assert engine.info(ticket.uuid).upload_pending

    clock.advance(60)
    object_store.put(ticket.uuid, CONTENT)
    d = engine.complete_upload(ticket.uuid)

    assert not d.upload_pending
    assert d.created_at == clock()
    assert d.expired_at == clock() + DEFAULT_RETENTION_SECONDS * 1000
    assert index.ttls[ticket.uuid] == DEFAULT_RETENTION_SECONDS
    assert "upload_track" not in json.loads(index.values[ticket.uuid])

    with pytest.raises(PreconditionFailed):
        engine.complete_upload(ticket.uuid)


def test_complete_uses_saved_expiration(engine, object_store, clock):
    wanted = NOW + 3 * 24 * 3600 * 1000
    ticket = _start(engine, expired_at=wanted)
    # de pending TTL blijft kort, ongeacht de gewenste expiratie
    assert engine.info(ticket.uuid).expired_at == NOW + PENDING_TTL_SECONDS * 1000

    object_store.put(ticket.uuid, CONTENT)
    d = engine.complete_upload(ticket.uuid)

    assert d.expired_at == wanted


def test_complete_on_normal_paste_is_invalid(engine):
    d = engine.create_paste(b"hello")

    with pytest.raises(PreconditionFailed):
        engine.complete_upload(d.uuid)


@pytest.mark.parametrize("file_hash", ["abc", "z" * 64, ""])
def test_create_rejects_bad_hash(engine, file_hash):
    with pytest.raises(ValidationFailed):
        _start(engine, file_hash=file_hash)


def test_create_rejects_oversized(engine, object_store):
    with pytest.raises(LimitExceeded):
        _start(engine, file_size=2 * 1024 * 1024 * 1024)


@pytest.mark.parametrize("offset_ms", [-1, (DEFAULT_RETENTION_SECONDS + 1) * 1000])
def test_create_rejects_expiration_outside_window(engine, offset_ms):
    with pytest.raises(ValidationFailed):
        _start(engine, expired_at=NOW + offset_ms)


def test_completed_small_large_paste_is_proxied(engine, object_store):
    ticket = _start(engine)
    object_store.put(ticket.uuid, CONTENT)
    engine.complete_upload(ticket.uuid)

    result = engine.read(ticket.uuid)

    assert result.redirect_url is None
    assert b"".join(result.body) == CONTENT


def test_large_paste_above_threshold_redirects(config, index, object_store, clock):
    config.large_proxy_threshold = 1024
    engine = PasteEngine(config, index, object_store_factory=lambda p: object_store, clock=clock)
    ticket = _start(engine)
    object_store.put(ticket.uuid, CONTENT)
    engine.complete_upload(ticket.uuid)

    result = engine.read(ticket.uuid)

    assert result.redirect_url.startswith("https://s3.test/pastes/" + ticket.uuid)
    assert not result.permanent_redirect
    assert result.descriptor.access_n == 1
    # URL staat nu in de descriptor cache
    assert engine.info(ticket.uuid).cached_presigned_url == result.redirect_url


def test_force_presign_redirects_below_threshold(engine, object_store):
    ticket = _start(engine)
    object_store.put(ticket.uuid, CONTENT)
    engine.complete_upload(ticket.uuid)

    result = engine.read(ticket.uuid, force_presign=True)

    assert result.redirect_url is not None
    assert result.body is None
