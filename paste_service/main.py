# paste_service/main.py
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from slowapi.errors import RateLimitExceeded

from paste_service.core.errors import PasteError, Unauthorized
from paste_service.core.logging_config import logger, setup_logging
from paste_service.core.rate_limit import client_key, limiter
from paste_service.core.settings import get_settings
from paste_service.observability.metrics import latency_hist
from paste_service.observability.metrics import router as metrics_router
from paste_service.routers import pastes, v2

settings = get_settings()

# ----------------------------------------------------
# App init
# ----------------------------------------------------
app = FastAPI(title="Paste service", version="0.1.0")

setup_logging(settings.log_level)
logger.info("startup", service="paste-service", env=settings.app_env)


# ----------------------------------------------------
# Health
# ----------------------------------------------------
@app.get("/health", include_in_schema=True)
def health() -> dict:
    return {"status": "ok"}


# ----------------------------------------------------
# Logging middleware
# ----------------------------------------------------
@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    start = time.time()

    client_ip = client_key(request)
    bound_logger = logger.bind(
        request_id=request.headers.get("X-Request-ID", "unknown"),
        ip=client_ip,
        endpoint=str(request.url.path),
        method=request.method,
    )

    bound_logger.info("request_started")
    response = await call_next(request)
    elapsed = time.time() - start

    # route template i.p.v. het pad, anders een label per uuid
    route = request.scope.get("route")
    latency_hist.labels(route=getattr(route, "path", "unmatched")).observe(elapsed)

    bound_logger.bind(status_code=response.status_code, latency_ms=round(elapsed * 1000, 2)).info(
        "request_finished"
    )
    return response


# ----------------------------------------------------
# Middleware
# ----------------------------------------------------
app.state.limiter = limiter

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ----------------------------------------------------
# Error handlers
# ----------------------------------------------------
def _is_v2(request: Request) -> bool:
    return request.url.path.startswith("/v2/")


@app.exception_handler(PasteError)
def paste_error_handler(request: Request, exc: PasteError):
    if exc.status_code >= 500:
        logger.error("request_failed", kind=exc.kind, endpoint=str(request.url.path), message=exc.message)
    else:
        logger.info("request_rejected", kind=exc.kind, status_code=exc.status_code)

    headers = None
    if isinstance(exc, Unauthorized) and exc.challenge:
        headers = {"WWW-Authenticate": 'Basic realm="Requires password"'}

    if _is_v2(request):
        return JSONResponse(
            {"status_code": exc.status_code, "error": exc.message},
            status_code=exc.status_code,
            headers=headers,
        )
    return PlainTextResponse(exc.message + "\n", status_code=exc.status_code, headers=headers)


@app.exception_handler(RequestValidationError)
def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info("request_invalid", endpoint=str(request.url.path), errors=len(exc.errors()))
    message = "Invalid request fields."
    if _is_v2(request):
        return JSONResponse({"status_code": 400, "error": message}, status_code=400)
    return PlainTextResponse(message + "\n", status_code=400)


@app.exception_handler(RateLimitExceeded)
def ratelimit_handler(request: Request, exc: RateLimitExceeded):
    return PlainTextResponse(str(exc), status_code=429)


# ----------------------------------------------------
# Routers
# ----------------------------------------------------
# volgorde telt: /{uuid}/{option} zou anders /v2/* en /metrics vangen
app.include_router(metrics_router)  # /metrics
app.include_router(v2.router)
app.include_router(pastes.router)
