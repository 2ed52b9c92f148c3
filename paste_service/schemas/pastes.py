# paste_service/schemas/pastes.py
from __future__ import annotations

from typing import Dict, Optional
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field, constr

from paste_service.models.paste import PasteDescriptor
from paste_service.utils.sizes import to_human_readable_size

QRCODE_SERVICE_URL = "https://qrcode.nekoid.cc/"


def paste_link(service_url: str, uuid: str) -> str:
    return f"{service_url.rstrip('/')}/{uuid}"


def qrcode_link(link: str, qr_type: str = "svg") -> str:
    return f"{QRCODE_SERVICE_URL}?{urlencode({'q': link, 'type': qr_type})}"


class PasteInfo(BaseModel):
    uuid: str
    link: str
    link_qr: str
    paste_type: int
    paste_type_label: str
    title: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: int
    human_readable_size: str
    has_password: bool
    access_n: int
    max_access_n: Optional[int] = None
    created_at: int
    expired_at: int
    upload_pending: Optional[bool] = None

    @classmethod
    def of(cls, descriptor: PasteDescriptor, service_url: str) -> "PasteInfo":
        link = paste_link(service_url, descriptor.uuid)
        return cls(
            uuid=descriptor.uuid,
            link=link,
            link_qr=qrcode_link(link),
            paste_type=int(descriptor.paste_type),
            paste_type_label=descriptor.paste_type.label,
            title=descriptor.title.strip() if descriptor.title else None,
            mime_type=descriptor.mime_type,
            file_size=descriptor.file_size,
            human_readable_size=to_human_readable_size(descriptor.file_size),
            has_password=descriptor.has_password,
            access_n=descriptor.access_n,
            max_access_n=descriptor.max_access_n,
            created_at=descriptor.created_at,
            expired_at=descriptor.expired_at,
            upload_pending=True if descriptor.upload_pending else None,
        )


# ---------- Body + Response Models (v2) ----------
class PasteCreateParams(BaseModel):
    model_config = ConfigDict(extra="forbid")

    password: Optional[constr(min_length=1, max_length=40)] = None
    max_access_n: Optional[int] = Field(None, ge=1)
    title: Optional[constr(min_length=1)] = None
    mime_type: Optional[constr(min_length=1)] = None
    file_size: int = Field(..., ge=0)
    file_hash: constr(min_length=64, max_length=64)
    expired_at: Optional[int] = None
    storage: Optional[constr(min_length=1)] = None


class PasteInfoUpdateParams(BaseModel):
    # file_size / file_hash zijn niet aanpasbaar na het aanmaken
    model_config = ConfigDict(extra="forbid")

    password: Optional[constr(min_length=1, max_length=40)] = None
    max_access_n: Optional[int] = Field(None, ge=1)
    title: Optional[constr(min_length=1)] = None
    mime_type: Optional[constr(min_length=1)] = None
    expired_at: Optional[int] = None

    def to_patch(self) -> dict:
        """Alleen expliciet meegestuurde velden (partial update)."""
        return self.model_dump(exclude_unset=True)


class PasteCreateUploadResponse(BaseModel):
    uuid: str
    expiration: int
    upload_url: str
    request_headers: Dict[str, str]


class LargeDownloadResponse(BaseModel):
    uuid: str
    expire: str
    signed_url: str
