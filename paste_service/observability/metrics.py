# paste_service/observability/metrics.py
from fastapi import APIRouter
from starlette.responses import Response

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

router = APIRouter(tags=["observability"])

paste_created_counter = Counter(
    "paste_created_total",
    "Aantal aangemaakte pastes",
    ["paste_type"],  # paste|link|large_paste
)

paste_read_counter = Counter(
    "paste_read_total",
    "Aantal content reads",
    ["result"],  # proxy|redirect|not_modified
)

large_upload_counter = Counter(
    "paste_large_upload_total",
    "Large upload handshake stappen",
    ["step", "result"],  # step: create|complete, result: success|error
)

upload_size_hist = Histogram(
    "paste_upload_size_bytes",
    "Paste groottes (gedeclareerd)",
    buckets=(1e3, 1e4, 1e5, 1e6, 1e7, 1e8, 1e9),
)

latency_hist = Histogram(
    "paste_api_latency_seconds",
    "API latency per route",
    ["route"],
)


@router.get("/metrics", include_in_schema=True)
def metrics() -> Response:
    # Prometheus expects text/plain; version=0.0.4
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
