# paste_service/security/basic_auth.py
import base64
import binascii
import re
from typing import Optional

from fastapi import Request

from paste_service.services.credentials import Credential, RejectedCredential

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def parse_basic_auth(header: str) -> Optional[tuple[str, str]]:
    # header: "Basic base64(user:pass)"
    try:
        scheme, b64 = header.split(" ", 1)
    except ValueError:
        return None
    if scheme != "Basic" or not b64:
        return None
    try:
        raw = base64.b64decode(b64.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    # user en pass worden door de eerste ':' gescheiden, geen control characters
    if ":" not in raw or _CONTROL_CHARS.search(raw):
        return None
    user, pwd = raw.split(":", 1)
    return user, pwd


def get_credential(request: Request) -> Credential:
    """
    Paste wachtwoord uit de request: Basic auth (lege username) of de
    x-pass header. None als er niets is meegestuurd.

    Een onbruikbare Authorization header wordt hier niet geweigerd; de engine
    beslist pas als de paste een wachtwoord heeft.
    """
    auth = request.headers.get("authorization")
    if auth:
        parsed = parse_basic_auth(auth)
        if parsed is None:
            return RejectedCredential(malformed=True)
        user, pwd = parsed
        if user:
            return RejectedCredential()
        return pwd
    return request.headers.get("x-pass")
