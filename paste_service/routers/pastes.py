# paste_service/routers/pastes.py
# Legacy text API: plain text responses, berichten eindigen met "\n".
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, RedirectResponse, Response, StreamingResponse
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from paste_service.core.errors import LimitExceeded, NotFound, ValidationFailed
from paste_service.core.rate_limit import limiter
from paste_service.core.settings import get_settings
from paste_service.dependencies import check_uuid, get_engine
from paste_service.models.paste import DEFAULT_MIME_TYPE, PasteDescriptor, PasteType
from paste_service.observability.metrics import paste_created_counter, paste_read_counter, upload_size_hist
from paste_service.schemas.pastes import PasteInfo
from paste_service.security.basic_auth import get_credential
from paste_service.services.paste_engine import PasteEngine, content_disposition
from paste_service.utils.rendering import render_info_html, render_info_text
from paste_service.utils.sizes import to_human_readable_size

router = APIRouter(tags=["pastes"])

API_TEXT = """Paste service

Create a paste:
    curl -F u=@file.txt {url}/
    curl -F "u=some text" -F pass=secret -F read-limit=3 {url}/
    curl --data-binary @file.txt -H "x-title: file.txt" {url}/
  form fields: u, pass, read-limit, title, mime-type, paste-type (paste|link), storage
  headers (raw body): x-title, content-type, x-pass, x-read-limit, x-paste-type, x-storage

Read a paste:
    GET {url}/<uuid>            content (links redirect)
    GET {url}/<uuid>/raw        content as text/plain
    GET {url}/<uuid>/download   content as attachment
    GET {url}/<uuid>/settings   paste info (?qr=1 for a QR code link)
  password protected pastes: basic auth with an empty username, or x-pass header

Delete a paste:
    curl -X DELETE -H "x-pass: secret" {url}/<uuid>

Large uploads: POST {url}/v2/create, PUT the file to upload_url, POST {url}/v2/complete/<uuid>
"""

READ_OPTIONS = ("raw", "download", "settings")


def _wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "")


def _flag(request: Request, name: str) -> bool:
    return request.query_params.get(name, "").lower() in ("1", "true", "yes")


def info_response(request: Request, descriptor: PasteDescriptor, engine: PasteEngine) -> Response:
    """Paste info als JSON (?json=1), HTML (browser) of plain text."""
    info = PasteInfo.of(descriptor, engine.config.service_url)
    need_qr = _flag(request, "qr")
    if _flag(request, "json"):
        return JSONResponse(info.model_dump())
    if _wants_html(request):
        return HTMLResponse(render_info_html(info, need_qr=need_qr))
    return PlainTextResponse(render_info_text(info, need_qr=need_qr))


def _parse_read_limit(raw: Optional[str]) -> Optional[int]:
    if raw is None or raw == "":
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValidationFailed("Invalid read-limit field, must be a positive integer.")
    if value < 1:
        raise ValidationFailed("Invalid read-limit field, must be a positive integer.")
    return value


def _form_text(form, name: str) -> Optional[str]:
    # alleen u mag een bestand zijn, de overige velden zijn tekst
    value = form.get(name)
    if value is not None and not isinstance(value, str):
        raise ValidationFailed(f"Invalid {name} field, expecting text.")
    return value


def _parse_paste_type(raw: Optional[str]) -> PasteType:
    try:
        return PasteType.parse(raw or None)
    except ValueError:
        raise ValidationFailed("Invalid paste-type field, expecting paste or link.")


@router.get("/", response_class=PlainTextResponse)
@router.get("/api", response_class=PlainTextResponse)
def api_description(engine: PasteEngine = Depends(get_engine)):
    return API_TEXT.format(url=engine.config.service_url)


@router.get("/favicon.ico")
def favicon():
    return PlainTextResponse("Not found.\n", status_code=404)


@router.post("/")
@limiter.limit(lambda: get_settings().RATE_LIMIT_CREATE)
async def create_paste(request: Request, engine: PasteEngine = Depends(get_engine)):
    max_inline = get_settings().MAX_INLINE_UPLOAD_BYTES
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > max_inline:
        raise LimitExceeded(f"Paste size must be under {to_human_readable_size(max_inline)}.")

    content_type = request.headers.get("content-type", "")
    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        field = form.get("u")
        if field is None:
            raise ValidationFailed("Missing u field.")
        if isinstance(field, UploadFile):
            content = await field.read()
            default_title = field.filename
            default_mime = field.content_type
        else:
            content = field.encode("utf-8")
            default_title = None
            default_mime = DEFAULT_MIME_TYPE
        title = _form_text(form, "title") or default_title
        mime_type = _form_text(form, "mime-type") or default_mime
        password = _form_text(form, "pass") or None
        read_limit = _form_text(form, "read-limit")
        paste_type = _form_text(form, "paste-type")
        storage = _form_text(form, "storage") or None
    else:
        content = await request.body()
        title = request.headers.get("x-title")
        mime_type = content_type or DEFAULT_MIME_TYPE
        password = request.headers.get("x-pass")
        read_limit = request.headers.get("x-read-limit")
        paste_type = request.headers.get("x-paste-type")
        storage = request.headers.get("x-storage")

    if len(content) > max_inline:
        raise LimitExceeded(f"Paste size must be under {to_human_readable_size(max_inline)}.")

    paste_type = _parse_paste_type(paste_type)
    descriptor = await run_in_threadpool(
        engine.create_paste,
        content,
        title=title,
        mime_type=mime_type,
        paste_type=paste_type,
        password=password,
        max_access_n=_parse_read_limit(read_limit),
        location=storage,
    )
    paste_created_counter.labels(paste_type=descriptor.paste_type.label).inc()
    upload_size_hist.observe(descriptor.file_size)
    return info_response(request, descriptor, engine)


@router.get("/{uuid}")
@router.get("/{uuid}/{option}")
def read_paste(
    uuid: str,
    request: Request,
    option: Optional[str] = None,
    engine: PasteEngine = Depends(get_engine),
):
    check_uuid(uuid, engine)
    if option is not None and option not in READ_OPTIONS:
        raise NotFound("Invalid option.")

    if option == "settings":
        return info_response(request, engine.info(uuid), engine)

    result = engine.read(uuid, get_credential(request), if_none_match=request.headers.get("if-none-match"))
    descriptor = result.descriptor

    if result.redirect_url is not None:
        paste_read_counter.labels(result="redirect").inc()
        return RedirectResponse(result.redirect_url, status_code=301 if result.permanent_redirect else 302)

    if result.not_modified:
        paste_read_counter.labels(result="not_modified").inc()
        return Response(status_code=304, headers={"etag": result.etag} if result.etag else None)

    headers = {
        "content-disposition": content_disposition(descriptor, attachment=option == "download"),
        # beperkte of beveiligde pastes mogen niet in gedeelde caches
        "cache-control": "private, no-store" if descriptor.has_password or descriptor.max_access_n else "public, max-age=3600",
    }
    if result.etag:
        headers["etag"] = result.etag
    if result.size is not None:
        headers["content-length"] = str(result.size)
    media_type = DEFAULT_MIME_TYPE if option == "raw" else descriptor.mime_type or DEFAULT_MIME_TYPE

    paste_read_counter.labels(result="proxy").inc()
    return StreamingResponse(result.body, media_type=media_type, headers=headers)


@router.delete("/{uuid}", response_class=PlainTextResponse)
def delete_paste(uuid: str, request: Request, engine: PasteEngine = Depends(get_engine)):
    check_uuid(uuid, engine)
    engine.delete(uuid, get_credential(request))
    return "OK\n"


@router.post("/{uuid}/settings")
def update_settings(uuid: str):
    # metadata wijzigen gaat via POST /v2/info/{uuid}
    raise ValidationFailed("Service is under maintenance.")
