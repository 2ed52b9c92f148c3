# paste_service/services/ids.py
import secrets
import string

ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase


class IdGenerator:
    """
    Korte random paste ids ([0-9A-Za-z]{length}).
    Geen collision check: met 62^length combinaties accepteren we dat risico.
    """

    def __init__(self, length: int = 4, alphabet: str = ALPHABET):
        if length <= 0:
            raise ValueError("id length must be positive")
        self.length = length
        self.alphabet = alphabet

    def generate(self) -> str:
        return "".join(secrets.choice(self.alphabet) for _ in range(self.length))

    def is_valid(self, uuid: str) -> bool:
        return len(uuid) == self.length and all(c in self.alphabet for c in uuid)
