# paste_service/services/object_store.py
from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Protocol, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from paste_service.aws.s3_errors import describe_client_error, is_not_found, is_not_modified
from paste_service.core.errors import UpstreamFailure
from paste_service.core.logging_config import logger
from paste_service.core.service_config import StorageProfile
from paste_service.infra.s3_client import get_s3

CHUNK_SIZE = 64 * 1024


class ObjectNotFound(Exception):
    """Object bestaat niet (meer) in de bucket."""


@dataclass
class StoredObject:
    body: Optional[Iterable[bytes]]
    size: Optional[int] = None
    content_type: Optional[str] = None
    etag: Optional[str] = None
    not_modified: bool = False

    def read(self) -> bytes:
        if self.body is None:
            return b""
        return b"".join(self.body)


class ObjectStore(Protocol):
    def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> None: ...

    def get(self, key: str, if_none_match: Optional[str] = None) -> StoredObject: ...

    def head(self, key: str) -> int: ...

    def delete(self, key: str) -> None: ...

    def presign_put(
        self, key: str, content_length: int, sha256_hex: str, expires_in: int
    ) -> Tuple[str, dict]: ...

    def presign_get(
        self,
        key: str,
        expires_in: int,
        response_content_type: Optional[str] = None,
        response_content_disposition: Optional[str] = None,
    ) -> str: ...


def sha256_hex_to_b64(sha256_hex: str) -> str:
    # S3 wil x-amz-checksum-sha256 als base64 van de digest, clients sturen hex
    return base64.b64encode(bytes.fromhex(sha256_hex)).decode("ascii")


class S3ObjectStore:
    """Object store op een S3-compatibel storage profiel (boto3)."""

    def __init__(self, profile: StorageProfile, client=None, upload_client=None, download_client=None):
        self.profile = profile
        self.bucket = profile.bucket_name
        self._client = client
        self._upload_client = upload_client
        self._download_client = download_client

    @property
    def client(self):
        if self._client is None:
            self._client = get_s3(self.profile)
        return self._client

    @property
    def upload_client(self):
        if self._upload_client is None:
            self._upload_client = get_s3(self.profile, self.profile.upload_url_base)
        return self._upload_client

    @property
    def download_client(self):
        if self._download_client is None:
            self._download_client = get_s3(self.profile, self.profile.download_url_base)
        return self._download_client

    def _upstream(self, op: str, key: str, e: Exception) -> UpstreamFailure:
        fields = describe_client_error(e) if isinstance(e, ClientError) else {"error": repr(e)}
        logger.error("s3_call_failed", op=op, storage=self.profile.name, key=key, **fields)
        return UpstreamFailure()

    def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> None:
        extra = {}
        if content_type:
            extra["ContentType"] = content_type
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=data, **extra)
        except (BotoCoreError, ClientError) as e:
            raise self._upstream("put", key, e) from e

    def get(self, key: str, if_none_match: Optional[str] = None) -> StoredObject:
        params = {"Bucket": self.bucket, "Key": key}
        if if_none_match:
            params["IfNoneMatch"] = if_none_match
        try:
            resp = self.client.get_object(**params)
        except ClientError as e:
            if is_not_found(e):
                raise ObjectNotFound(key) from e
            if is_not_modified(e):
                return StoredObject(body=None, etag=if_none_match, not_modified=True)
            raise self._upstream("get", key, e) from e
        except BotoCoreError as e:
            raise self._upstream("get", key, e) from e

        return StoredObject(
            body=_iter_body(resp["Body"]),
            size=resp.get("ContentLength"),
            content_type=resp.get("ContentType"),
            etag=resp.get("ETag"),
        )

    def head(self, key: str) -> int:
        try:
            head = self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if is_not_found(e):
                raise ObjectNotFound(key) from e
            raise self._upstream("head", key, e) from e
        except BotoCoreError as e:
            raise self._upstream("head", key, e) from e
        return int(head["ContentLength"])

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise self._upstream("delete", key, e) from e

    def presign_put(self, key: str, content_length: int, sha256_hex: str, expires_in: int) -> Tuple[str, dict]:
        checksum = sha256_hex_to_b64(sha256_hex)
        try:
            url = self.upload_client.generate_presigned_url(
                ClientMethod="put_object",
                Params={
                    "Bucket": self.bucket,
                    "Key": key,
                    "ContentLength": content_length,
                    "ChecksumSHA256": checksum,
                },
                ExpiresIn=expires_in,
                HttpMethod="PUT",
            )
        except (BotoCoreError, ClientError) as e:
            raise self._upstream("presign_put", key, e) from e

        required_headers = {
            "Content-Length": str(content_length),
            "x-amz-checksum-sha256": checksum,
        }
        return url, required_headers

    def presign_get(
        self,
        key: str,
        expires_in: int,
        response_content_type: Optional[str] = None,
        response_content_disposition: Optional[str] = None,
    ) -> str:
        params = {"Bucket": self.bucket, "Key": key}
        if response_content_type:
            params["ResponseContentType"] = response_content_type
        if response_content_disposition:
            params["ResponseContentDisposition"] = response_content_disposition
        try:
            return self.download_client.generate_presigned_url(
                ClientMethod="get_object",
                Params=params,
                ExpiresIn=expires_in,
                HttpMethod="GET",
            )
        except (BotoCoreError, ClientError) as e:
            raise self._upstream("presign_get", key, e) from e


def _iter_body(body) -> Iterator[bytes]:
    try:
        for chunk in body.iter_chunks(CHUNK_SIZE):
            yield chunk
    finally:
        body.close()
