# paste_service/aws/s3_errors.py
from typing import Any, Dict

from botocore.exceptions import ClientError

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}
_NOT_MODIFIED_CODES = {"304", "NotModified"}


def error_code(e: ClientError) -> str:
    return str((e.response.get("Error", {}) or {}).get("Code", ""))


def is_not_found(e: ClientError) -> bool:
    return error_code(e) in _NOT_FOUND_CODES


def is_not_modified(e: ClientError) -> bool:
    return error_code(e) in _NOT_MODIFIED_CODES


def describe_client_error(e: ClientError) -> Dict[str, Any]:
    """
    Velden voor de logregel. Gaat nooit naar de client: die krijgt alleen
    een generieke 'Internal server error.'.
    """
    err = e.response.get("Error", {}) or {}
    meta = e.response.get("ResponseMetadata", {}) or {}

    code = str(err.get("Code", ""))
    http_status = int(meta.get("HTTPStatusCode", 500))

    hint = None
    if code in {"AccessDenied"}:
        hint = "check bucket policy / access key permissions"
    elif code in {"SignatureDoesNotMatch"}:
        hint = "check region vs bucket region and clock sync"
    elif code in {"RequestTimeout", "SlowDown", "Throttling"}:
        hint = "throttled by storage provider"
    elif 500 <= http_status < 600:
        hint = "temporary storage provider failure"

    return {
        "s3_code": code,
        "s3_message": err.get("Message", "") or str(e),
        "s3_http": http_status,
        "s3_request_id": meta.get("RequestId"),
        "hint": hint,
    }
