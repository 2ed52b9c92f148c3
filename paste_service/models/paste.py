# paste_service/models/paste.py
from __future__ import annotations

import enum
import json
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

LINK_MIME_TYPE = "text/x-uri"
DEFAULT_MIME_TYPE = "text/plain; charset=UTF-8"


class PasteType(enum.IntEnum):
    paste = 1
    link = 2
    large_paste = 3

    @property
    def label(self) -> str:
        return self.name

    @classmethod
    def parse(cls, value: Any) -> "PasteType":
        """
        Accepteert zowel de int waarde (v2) als de oude string labels
        ("paste", "link", "large_paste") uit v1 descriptors.
        """
        if isinstance(value, PasteType):
            return value
        if value is None:
            return cls.paste
        if isinstance(value, str):
            if value.isdigit():
                return cls(int(value))
            try:
                return cls[value]
            except KeyError:
                raise ValueError(f"unknown paste type: {value!r}")
        return cls(int(value))

    def default_storage(self) -> str:
        return "large" if self is PasteType.large_paste else "default"


@dataclass
class UploadTrack:
    pending_upload: bool = False
    saved_expired_at: Optional[int] = None


@dataclass
class PasteDescriptor:
    """
    Eén record per paste in de index. Tijden zijn epoch milliseconden.
    `password` is altijd de fingerprint, nooit het wachtwoord zelf.
    """

    uuid: str
    paste_type: PasteType
    file_size: int
    created_at: int
    expired_at: int
    title: Optional[str] = None
    mime_type: Optional[str] = None
    password: Optional[str] = None
    access_n: int = 0
    max_access_n: Optional[int] = None
    storage: Optional[str] = None
    upload_track: Optional[UploadTrack] = None
    cached_presigned_url: Optional[str] = None
    cached_presigned_url_expiration: Optional[int] = None

    @property
    def has_password(self) -> bool:
        return self.password is not None

    @property
    def upload_pending(self) -> bool:
        return bool(self.upload_track and self.upload_track.pending_upload)

    @property
    def storage_location(self) -> str:
        return self.storage or self.paste_type.default_storage()

    @property
    def access_exhausted(self) -> bool:
        return self.max_access_n is not None and self.access_n >= self.max_access_n

    def ttl_seconds(self, now_ms: int) -> int:
        # redis wil minimaal 1 seconde
        return max(1, -(-(self.expired_at - now_ms) // 1000))

    # ---- (de)serialisatie -------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["paste_type"] = int(self.paste_type)
        if self.upload_track is None:
            data.pop("upload_track")
        # None velden niet wegschrijven (zelfde vorm als oude records)
        return {k: v for k, v in data.items() if v is not None}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: Dict[str, Any], uuid: Optional[str] = None) -> "PasteDescriptor":
        track = data.get("upload_track")
        created_at = int(data.get("created_at", data.get("last_modified", 0)))
        expired_at = data.get("expired_at", data.get("expiration"))
        return cls(
            uuid=data.get("uuid") or uuid or "",
            paste_type=PasteType.parse(data.get("paste_type", data.get("type"))),
            file_size=int(data.get("file_size", data.get("size", 0))),
            created_at=created_at,
            expired_at=int(expired_at) if expired_at is not None else created_at + 2419200 * 1000,
            title=data.get("title"),
            mime_type=data.get("mime_type"),
            password=data.get("password"),
            access_n=int(data.get("access_n", 0)),
            max_access_n=data.get("max_access_n"),
            storage=data.get("storage"),
            upload_track=UploadTrack(
                pending_upload=bool(track.get("pending_upload", False)),
                saved_expired_at=track.get("saved_expired_at"),
            )
            if isinstance(track, dict)
            else None,
            cached_presigned_url=data.get("cached_presigned_url"),
            cached_presigned_url_expiration=data.get("cached_presigned_url_expiration"),
        )

    @classmethod
    def from_json(cls, raw: bytes | str, uuid: Optional[str] = None) -> "PasteDescriptor":
        return cls.from_dict(json.loads(raw), uuid=uuid)
