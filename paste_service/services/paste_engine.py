# paste_service/services/paste_engine.py
from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional
from urllib.parse import quote, urlsplit

from paste_service.core.errors import (
    AccessLimitReached,
    ConfigurationError,
    Expired,
    LimitExceeded,
    NotFound,
    PreconditionFailed,
    Unauthorized,
    ValidationFailed,
)
from paste_service.core.logging_config import logger
from paste_service.core.service_config import ServiceConfig, StorageProfile, StorageResolver
from paste_service.models.paste import (
    DEFAULT_MIME_TYPE,
    LINK_MIME_TYPE,
    PasteDescriptor,
    PasteType,
    UploadTrack,
)
from paste_service.services import credentials
from paste_service.services.descriptor_store import DescriptorStore
from paste_service.services.credentials import Credential
from paste_service.services.ids import IdGenerator
from paste_service.services.object_store import ObjectNotFound, ObjectStore, S3ObjectStore
from paste_service.utils.sizes import to_human_readable_size

# === Lifecycle constanten (seconden) ===
DEFAULT_RETENTION_SECONDS = 2419200  # 28 dagen
PENDING_TTL_SECONDS = 14400  # 4 uur voor een nog niet afgeronde large upload
PRESIGN_PUT_EXPIRES = 900  # 15 min
PRESIGN_GET_EXPIRES = 14400  # 4 uur
PRESIGN_RENEW_MARGIN_SECONDS = 600  # cached URL alleen hergebruiken als er >10 min over is

EDITABLE_FIELDS = ("password", "max_access_n", "title", "mime_type", "expired_at")

_SHA256_HEX_RE = re.compile(r"^[0-9a-fA-F]{64}$")


def now_ms() -> int:
    return int(time.time() * 1000)


def content_disposition(descriptor: PasteDescriptor, attachment: bool = False) -> str:
    name = quote(descriptor.title or descriptor.uuid, safe="")
    return f"{'attachment' if attachment else 'inline'}; filename*=UTF-8''{name}"


def parse_link(raw: bytes) -> str:
    """Link pastes worden pas bij het lezen als absolute URL gevalideerd."""
    try:
        text = raw.decode("utf-8").strip()
    except UnicodeDecodeError:
        raise ValidationFailed("Invalid URL.")
    parts = urlsplit(text)
    if not text or any(c.isspace() for c in text) or not parts.scheme or not parts.netloc:
        raise ValidationFailed("Invalid URL.")
    return text


@dataclass
class LargeUploadTicket:
    uuid: str
    expiration: int
    upload_url: str
    request_headers: Dict[str, str]


@dataclass
class ReadResult:
    descriptor: PasteDescriptor
    body: Optional[Iterable[bytes]] = None
    redirect_url: Optional[str] = None
    # 301 voor link pastes, 302 voor presigned downloads
    permanent_redirect: bool = False
    not_modified: bool = False
    etag: Optional[str] = None
    size: Optional[int] = None


class PasteEngine:
    """
    Paste lifecycle: create / large upload handshake / read gating / metadata
    update / delete. Eén instantie per request; config en collaborators worden
    expliciet meegegeven.

    `defer` krijgt writes die na de response mogen gebeuren (access count,
    presigned URL cache). Zonder `defer` worden ze direct uitgevoerd.
    """

    def __init__(
        self,
        config: ServiceConfig,
        index: DescriptorStore,
        object_store_factory: Callable[[StorageProfile], ObjectStore] = S3ObjectStore,
        clock: Callable[[], int] = now_ms,
        defer: Optional[Callable[..., Any]] = None,
        id_generator: Optional[IdGenerator] = None,
    ):
        self.config = config
        self.index = index
        self.resolver = StorageResolver(config)
        self.object_store_factory = object_store_factory
        self.clock = clock
        self._defer = defer
        self.ids = id_generator or IdGenerator(config.uuid_length)

    # ---- internals -------------------------------------------------

    def defer(self, fn: Callable[..., Any], *args: Any) -> None:
        if self._defer is None:
            fn(*args)
        else:
            self._defer(fn, *args)

    def _load(self, uuid: str) -> PasteDescriptor:
        raw = self.index.get(uuid)
        if raw is None:
            raise NotFound()
        return PasteDescriptor.from_json(raw, uuid=uuid)

    def _save(self, descriptor: PasteDescriptor, ttl_seconds: Optional[int] = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else descriptor.ttl_seconds(self.clock())
        self.index.put(descriptor.uuid, descriptor.to_json(), ttl)

    def _save_later(self, descriptor: PasteDescriptor) -> None:
        # snapshot nu nemen, de write zelf mag later
        self.defer(self.index.put, descriptor.uuid, descriptor.to_json(), descriptor.ttl_seconds(self.clock()))

    def _store_for(self, descriptor: PasteDescriptor) -> ObjectStore:
        return self.object_store_factory(self.resolver.require(descriptor.storage_location))

    def _retention_ms(self, profile: StorageProfile) -> int:
        return min(DEFAULT_RETENTION_SECONDS, profile.max_ttl) * 1000

    def _check_credential(self, descriptor: PasteDescriptor, credential: Credential, reading: bool = True) -> None:
        # Authorization header telt alleen mee voor pastes met een wachtwoord
        if not descriptor.has_password:
            return
        if isinstance(credential, credentials.RejectedCredential) and credential.malformed:
            raise ValidationFailed("Invalid Authorization header.")
        if credential is None:
            if reading:
                raise Unauthorized("This paste requires password.")
            raise Unauthorized("This operation requires password.", challenge=False)
        if not credentials.verify(descriptor.password, credential):
            if reading:
                raise Unauthorized("Incorrect password.")
            raise Unauthorized("Invalid access credentials.", challenge=False, status_code=403)

    def _validate_password(self, password: Optional[str]) -> Optional[str]:
        if password is None:
            return None
        if not credentials.check_password_rules(password):
            raise ValidationFailed(
                "Invalid password. Password must contain alphabets and digits only, "
                f"and at most {credentials.PASSWORD_MAX_LENGTH} characters."
            )
        return credentials.fingerprint(password)

    def _validate_max_access(self, max_access_n: Optional[int]) -> Optional[int]:
        if max_access_n is not None and (isinstance(max_access_n, bool) or int(max_access_n) < 1):
            raise ValidationFailed("Invalid read-limit field, must be a positive integer.")
        return int(max_access_n) if max_access_n is not None else None

    def _validate_expired_at(self, expired_at: Optional[int], profile: StorageProfile) -> Optional[int]:
        if expired_at is None:
            return None
        now = self.clock()
        if not (now < int(expired_at) <= now + self._retention_ms(profile)):
            raise ValidationFailed("Invalid expired_at, must be in the future and within the retention window.")
        return int(expired_at)

    def _check_size(self, size: int, profile: StorageProfile) -> None:
        if size > profile.max_file_size:
            raise LimitExceeded(f"Paste size must be under {to_human_readable_size(profile.max_file_size)}.")

    # ---- create ----------------------------------------------------

    def create_paste(
        self,
        content: bytes,
        *,
        size: Optional[int] = None,
        title: Optional[str] = None,
        mime_type: Optional[str] = None,
        paste_type: PasteType = PasteType.paste,
        password: Optional[str] = None,
        max_access_n: Optional[int] = None,
        location: Optional[str] = None,
    ) -> PasteDescriptor:
        paste_type = PasteType.parse(paste_type)
        if paste_type is PasteType.large_paste:
            raise ValidationFailed("Large pastes must be created via the upload handshake.")

        profile = self.resolver.require(location or paste_type.default_storage())
        if size is not None and size != len(content):
            raise ValidationFailed("Declared size does not match the content length.")
        size = len(content)
        self._check_size(size, profile)
        if size == 0:
            raise ValidationFailed("Paste cannot be empty.")
        fingerprint = self._validate_password(password)
        max_access_n = self._validate_max_access(max_access_n)

        if paste_type is PasteType.link:
            mime_type = LINK_MIME_TYPE

        uuid = self.ids.generate()
        # eerst het object, dan pas de descriptor (geen descriptors naar lege objecten)
        self.object_store_factory(profile).put(uuid, content, mime_type)

        now = self.clock()
        descriptor = PasteDescriptor(
            uuid=uuid,
            paste_type=paste_type,
            title=title or None,
            mime_type=mime_type or None,
            file_size=size,
            password=fingerprint,
            access_n=0,
            max_access_n=max_access_n,
            created_at=now,
            expired_at=now + self._retention_ms(profile),
            storage=location or None,
        )
        self._save(descriptor)
        logger.info("paste_created", uuid=uuid, paste_type=paste_type.label, size=size, storage=profile.name)
        return descriptor

    def create_large_upload(
        self,
        *,
        file_size: int,
        file_hash: str,
        title: Optional[str] = None,
        mime_type: Optional[str] = None,
        password: Optional[str] = None,
        max_access_n: Optional[int] = None,
        expired_at: Optional[int] = None,
        location: Optional[str] = None,
    ) -> LargeUploadTicket:
        profile = self.resolver.require(location or PasteType.large_paste.default_storage())
        if file_size < 0:
            raise ValidationFailed("Invalid file-size, expecting a non-negative integer.")
        if not _SHA256_HEX_RE.match(file_hash or ""):
            raise ValidationFailed("Invalid file-sha256-hash, expecting a SHA256 hex.")
        self._check_size(file_size, profile)
        fingerprint = self._validate_password(password)
        max_access_n = self._validate_max_access(max_access_n)
        saved_expired_at = self._validate_expired_at(expired_at, profile)

        uuid = self.ids.generate()
        upload_url, request_headers = self.object_store_factory(profile).presign_put(
            uuid, file_size, file_hash.lower(), PRESIGN_PUT_EXPIRES
        )

        now = self.clock()
        descriptor = PasteDescriptor(
            uuid=uuid,
            paste_type=PasteType.large_paste,
            title=title or None,
            mime_type=mime_type or None,
            file_size=file_size,
            password=fingerprint,
            access_n=0,
            max_access_n=max_access_n,
            created_at=now,
            expired_at=now + PENDING_TTL_SECONDS * 1000,
            storage=location or None,
            upload_track=UploadTrack(pending_upload=True, saved_expired_at=saved_expired_at),
        )
        self._save(descriptor, ttl_seconds=PENDING_TTL_SECONDS)
        logger.info("large_upload_created", uuid=uuid, size=file_size, storage=profile.name)

        return LargeUploadTicket(
            uuid=uuid,
            expiration=now + PRESIGN_PUT_EXPIRES * 1000,
            upload_url=upload_url,
            request_headers=request_headers,
        )

    def complete_upload(self, uuid: str) -> PasteDescriptor:
        descriptor = self._load(uuid)
        if descriptor.paste_type is not PasteType.large_paste or not descriptor.upload_pending:
            raise PreconditionFailed("Invalid operation.")

        profile = self.resolver.require(descriptor.storage_location)
        try:
            actual = self.object_store_factory(profile).head(uuid)
        except ObjectNotFound:
            actual = None
        if actual != descriptor.file_size:
            logger.info("large_upload_incomplete", uuid=uuid, actual=actual, declared=descriptor.file_size)
            raise ValidationFailed(
                f"This paste is not finishing upload. ({actual if actual is not None else 0} != {descriptor.file_size})"
            )

        now = self.clock()
        saved = descriptor.upload_track.saved_expired_at if descriptor.upload_track else None
        descriptor.created_at = now
        # gevraagde expiry kan tijdens de upload al verstreken zijn
        if saved is not None and saved > now:
            descriptor.expired_at = saved
        else:
            descriptor.expired_at = now + self._retention_ms(profile)
        descriptor.upload_track = None
        self._save(descriptor)
        logger.info("large_upload_completed", uuid=uuid, size=descriptor.file_size)
        return descriptor

    # ---- read ------------------------------------------------------

    def info(self, uuid: str) -> PasteDescriptor:
        return self._load(uuid)

    def read(
        self,
        uuid: str,
        credential: Credential = None,
        if_none_match: Optional[str] = None,
        force_presign: bool = False,
    ) -> ReadResult:
        descriptor = self._load(uuid)
        self._check_credential(descriptor, credential)
        if descriptor.access_exhausted:
            raise AccessLimitReached()
        if descriptor.upload_pending:
            raise PreconditionFailed("This paste is not yet finalized.")
        if force_presign and descriptor.paste_type is not PasteType.large_paste:
            raise PreconditionFailed("Invalid operation.")

        redirect_large = descriptor.paste_type is PasteType.large_paste and (
            force_presign or descriptor.file_size >= self.config.large_proxy_threshold
        )
        if redirect_large:
            url = self.presigned_download_url(descriptor, persist=False)
            if url is None:
                raise ConfigurationError()
            result = ReadResult(descriptor=descriptor, redirect_url=url)
        else:
            store = self._store_for(descriptor)
            # link pastes altijd als 301 beantwoorden, nooit als 304
            if descriptor.paste_type is PasteType.link:
                if_none_match = None
            try:
                obj = store.get(uuid, if_none_match=if_none_match)
            except ObjectNotFound:
                # index entry bestaat nog maar het object is weg: direct opruimen,
                # deferred writes lopen niet als de request met een fout eindigt
                self.index.delete(uuid)
                logger.info("paste_reaped", uuid=uuid)
                raise Expired()

            if obj.not_modified:
                result = ReadResult(descriptor=descriptor, not_modified=True, etag=obj.etag)
            elif descriptor.paste_type is PasteType.link:
                target = parse_link(obj.read())
                result = ReadResult(descriptor=descriptor, redirect_url=target, permanent_redirect=True)
            else:
                result = ReadResult(descriptor=descriptor, body=obj.body, etag=obj.etag, size=obj.size)

        descriptor.access_n += 1
        self._save_later(descriptor)
        logger.info("paste_read", uuid=uuid, access_n=descriptor.access_n, redirect=result.redirect_url is not None)
        return result

    def presigned_download_url(self, descriptor: PasteDescriptor, persist: bool = True) -> Optional[str]:
        now = self.clock()
        if descriptor.cached_presigned_url:
            expiration = descriptor.cached_presigned_url_expiration or 0
            if expiration > now + PRESIGN_RENEW_MARGIN_SECONDS * 1000:
                return descriptor.cached_presigned_url

        profile = self.resolver.resolve(descriptor.storage_location)
        if profile is None:
            return None

        url = self.object_store_factory(profile).presign_get(
            descriptor.uuid,
            PRESIGN_GET_EXPIRES,
            response_content_type=descriptor.mime_type or DEFAULT_MIME_TYPE,
            response_content_disposition=content_disposition(descriptor),
        )
        descriptor.cached_presigned_url = url
        descriptor.cached_presigned_url_expiration = now + PRESIGN_GET_EXPIRES * 1000
        if persist:
            self._save_later(descriptor)
        return url

    # ---- mutate ----------------------------------------------------

    def update_metadata(self, uuid: str, credential: Credential, patch: Dict[str, Any]) -> PasteDescriptor:
        unknown = set(patch) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationFailed(f"Invalid request fields: {', '.join(sorted(unknown))}.")

        descriptor = self._load(uuid)
        self._check_credential(descriptor, credential, reading=False)
        if descriptor.upload_pending:
            raise PreconditionFailed("This paste is not yet finalized.")

        profile = self.resolver.require(descriptor.storage_location)
        if "password" in patch:
            descriptor.password = self._validate_password(patch["password"])
        if "max_access_n" in patch:
            descriptor.max_access_n = self._validate_max_access(patch["max_access_n"])
        if "expired_at" in patch:
            if patch["expired_at"] is None:
                raise ValidationFailed("Invalid expired_at, must be in the future and within the retention window.")
            descriptor.expired_at = self._validate_expired_at(patch["expired_at"], profile)
        if "title" in patch or "mime_type" in patch:
            if "title" in patch:
                descriptor.title = patch["title"] or None
            if "mime_type" in patch and descriptor.paste_type is not PasteType.link:
                descriptor.mime_type = patch["mime_type"] or None
            # response headers zitten in de signature, dus cache weggooien
            descriptor.cached_presigned_url = None
            descriptor.cached_presigned_url_expiration = None

        self._save(descriptor)
        logger.info("paste_updated", uuid=uuid, fields=sorted(patch))
        return descriptor

    def delete(self, uuid: str, credential: Credential = None) -> None:
        descriptor = self._load(uuid)
        self._check_credential(descriptor, credential, reading=False)
        if descriptor.upload_pending:
            raise PreconditionFailed("This paste is not yet finalized.")

        # faalt de object delete, dan blijft de index entry staan
        self._store_for(descriptor).delete(uuid)
        self.index.delete(uuid)
        logger.info("paste_deleted", uuid=uuid)
