# paste_service/core/rate_limit.py
from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address


def client_key(request: Request) -> str:
    # achter een proxy / CDN: eerste hop uit X-Forwarded-For
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


# 1 gedeelde Limiter voor de hele app (alleen create endpoints zijn gelimiteerd)
limiter = Limiter(key_func=client_key)
