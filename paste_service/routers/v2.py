# paste_service/routers/v2.py

from typing import Any, Optional

import redis
from fastapi import APIRouter, Body, Depends, Header, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from paste_service.core.errors import NotFound, PasteError, ValidationFailed
from paste_service.core.logging_config import logger
from paste_service.core.rate_limit import limiter
from paste_service.core.service_config import ServiceConfig, save_service_config
from paste_service.core.settings import Settings, get_settings
from paste_service.dependencies import check_uuid, get_engine, get_redis, get_service_config
from paste_service.observability.metrics import large_upload_counter, paste_read_counter, upload_size_hist
from paste_service.schemas.pastes import (
    LargeDownloadResponse,
    PasteCreateParams,
    PasteCreateUploadResponse,
    PasteInfo,
    PasteInfoUpdateParams,
)
from paste_service.security.basic_auth import get_credential
from paste_service.services.paste_engine import PasteEngine
from paste_service.utils.rendering import iso

router = APIRouter(prefix="/v2", tags=["v2"])


def envelope(name: str, payload: Any, status_code: int = 200) -> JSONResponse:
    """Alle v2 responses: {"status_code": n, "<name>": payload}"""
    if hasattr(payload, "model_dump"):
        payload = payload.model_dump()
    return JSONResponse({"status_code": status_code, name: payload}, status_code=status_code)


# ---------- Paste info ----------
@router.get("/info/{uuid}")
def get_info(uuid: str, engine: PasteEngine = Depends(get_engine)):
    check_uuid(uuid, engine)
    descriptor = engine.info(uuid)
    return envelope("info", PasteInfo.of(descriptor, engine.config.service_url))


@router.post("/info/{uuid}")
def update_info(
    uuid: str,
    request: Request,
    body: PasteInfoUpdateParams,
    engine: PasteEngine = Depends(get_engine),
):
    check_uuid(uuid, engine)
    descriptor = engine.update_metadata(uuid, get_credential(request), body.to_patch())
    return envelope("info", PasteInfo.of(descriptor, engine.config.service_url))


# ---------- Large upload handshake ----------
@router.post("/create")
@limiter.limit(lambda: get_settings().RATE_LIMIT_CREATE)
def create_large_upload(
    request: Request,
    body: PasteCreateParams,
    engine: PasteEngine = Depends(get_engine),
):
    try:
        ticket = engine.create_large_upload(
            file_size=body.file_size,
            file_hash=body.file_hash,
            title=body.title,
            mime_type=body.mime_type,
            password=body.password,
            max_access_n=body.max_access_n,
            expired_at=body.expired_at,
            location=body.storage,
        )
    except PasteError:
        large_upload_counter.labels(step="create", result="error").inc()
        raise
    large_upload_counter.labels(step="create", result="success").inc()
    upload_size_hist.observe(body.file_size)

    return envelope(
        "upload",
        PasteCreateUploadResponse(
            uuid=ticket.uuid,
            expiration=ticket.expiration,
            upload_url=ticket.upload_url,
            request_headers=ticket.request_headers,
        ),
    )


@router.post("/complete/{uuid}")
def complete_upload(uuid: str, engine: PasteEngine = Depends(get_engine)):
    check_uuid(uuid, engine)
    try:
        descriptor = engine.complete_upload(uuid)
    except PasteError:
        large_upload_counter.labels(step="complete", result="error").inc()
        raise
    large_upload_counter.labels(step="complete", result="success").inc()
    return envelope("info", PasteInfo.of(descriptor, engine.config.service_url))


@router.get("/large_upload/{uuid}")
def large_download(uuid: str, request: Request, engine: PasteEngine = Depends(get_engine)):
    # telt als een read (access_n), net als GET /{uuid}
    check_uuid(uuid, engine)
    result = engine.read(uuid, get_credential(request), force_presign=True)
    paste_read_counter.labels(result="redirect").inc()
    return envelope(
        "download",
        LargeDownloadResponse(
            uuid=uuid,
            expire=iso(result.descriptor.cached_presigned_url_expiration),
            signed_url=result.redirect_url,
        ),
    )


# ---------- Runtime config ----------
@router.get("/config")
def get_config(
    x_auth_token: Optional[str] = Header(None),
    config: ServiceConfig = Depends(get_service_config),
):
    if not config.check_auth(x_auth_token):
        raise NotFound("Invalid endpoint.")
    return envelope("config", config.redacted())


@router.post("/config")
def update_config(
    payload: dict = Body(...),
    x_auth_token: Optional[str] = Header(None),
    config: ServiceConfig = Depends(get_service_config),
    redis_client: redis.Redis = Depends(get_redis),
    settings: Settings = Depends(get_settings),
):
    if not config.check_auth(x_auth_token):
        raise NotFound("Invalid endpoint.")
    try:
        new_config = ServiceConfig.model_validate(payload)
    except ValidationError as e:
        logger.info("service_config_rejected", errors=e.error_count())
        raise ValidationFailed("Invalid config.") from e

    save_service_config(redis_client, settings, new_config)
    return envelope("config", new_config.redacted())
