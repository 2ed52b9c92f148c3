# paste_service/services/credentials.py
import hashlib
import hmac
import re
from dataclasses import dataclass
from typing import Union

PASSWORD_MAX_LENGTH = 40
FINGERPRINT_LENGTH = 16

_PASSWORD_RE = re.compile(r"^[A-Za-z0-9]+$")


@dataclass(frozen=True)
class RejectedCredential:
    """
    Authorization header die niet als paste wachtwoord bruikbaar is.
    Pas een fout zodra de paste echt een wachtwoord heeft; publieke
    pastes negeren de header.
    """

    malformed: bool = False


Credential = Union[str, RejectedCredential, None]


def check_password_rules(password: str) -> bool:
    """Alleen letters en cijfers, niet leeg, max. 40 tekens."""
    return isinstance(password, str) and bool(_PASSWORD_RE.match(password)) and len(password) <= PASSWORD_MAX_LENGTH


def fingerprint(plaintext: str) -> str:
    # Ongezouten + afgekapt, compatibel met bestaande descriptors (zie DESIGN.md)
    return hashlib.sha256(plaintext.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def verify(stored_fingerprint: str, plaintext: Credential) -> bool:
    if not isinstance(plaintext, str):
        return False
    return hmac.compare_digest(stored_fingerprint, fingerprint(plaintext))
