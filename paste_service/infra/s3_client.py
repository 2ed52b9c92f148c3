# paste_service/infra/s3_client.py
from typing import Any, Dict, Optional, Tuple

import boto3
from botocore.config import Config

from paste_service.core.logging_config import logger
from paste_service.core.service_config import StorageProfile

_BOTO_CFG = Config(
    signature_version="s3v4",
    s3={"addressing_style": "path"},
    retries={"max_attempts": 3, "mode": "standard"},
    connect_timeout=3,
    read_timeout=30,
    # geen automatische CRC32 checksums in presigned URLs
    request_checksum_calculation="when_required",
    response_checksum_validation="when_required",
)

_clients: Dict[Tuple[str, str, str, str], Any] = {}


def get_s3(profile: StorageProfile, endpoint: Optional[str] = None):
    """Lazy S3 client per (endpoint, region, credentials) combinatie."""
    endpoint_url = endpoint or profile.endpoint
    cache_key = (endpoint_url, profile.region, profile.access_key_id, profile.secret_access_key)
    client = _clients.get(cache_key)
    if client is None:
        client = boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            region_name=profile.region,
            aws_access_key_id=profile.access_key_id,
            aws_secret_access_key=profile.secret_access_key,
            config=_BOTO_CFG,
        )
        _clients[cache_key] = client
        logger.info("s3_client_initialized", storage=profile.name, endpoint=endpoint_url, region=profile.region)
    return client
