"""
S3-compatible object storage operator.

boto3 clients are thread-safe but blocking, so every round-trip is pushed to
the threadpool to keep the event loop free.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from .config import ObjectStorageConfig
from .errors import StorageConfigError, StorageError

logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"
CONNECT_TIMEOUT_SECONDS = 5
READ_TIMEOUT_SECONDS = 10


class StorageOperator:
    def __init__(self, client: Any, bucket: str, endpoint: Optional[str] = None) -> None:
        self._client = client
        self.bucket = bucket
        self.endpoint = endpoint

    @property
    def client(self) -> Any:
        return self._client

    async def check(self) -> None:
        """Single reachability check against the bucket. Never retried."""
        try:
            await run_in_threadpool(self._client.head_bucket, Bucket=self.bucket)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Storage check failed for bucket {self.bucket!r}: {exc}") from exc

    def close(self) -> None:
        self._client.close()

    def __repr__(self) -> str:
        return f"StorageOperator(bucket={self.bucket!r}, endpoint={self.endpoint!r})"


def _validate_endpoint(endpoint: str) -> None:
    parsed = urlparse(endpoint)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise StorageConfigError(f"Invalid object storage endpoint: {endpoint!r}")


def get_storage_operator(config: ObjectStorageConfig) -> StorageOperator:
    """Build an operator bound to the configured bucket. Performs no network I/O."""

    if not config.bucket:
        raise StorageConfigError("Object storage bucket must be set")

    endpoint = config.endpoint or None
    if endpoint:
        _validate_endpoint(endpoint)

    boto_options: Dict[str, Any] = {
        "signature_version": "s3v4",
        "retries": {"total_max_attempts": 1, "mode": "standard"},
        "connect_timeout": CONNECT_TIMEOUT_SECONDS,
        "read_timeout": READ_TIMEOUT_SECONDS,
    }
    if endpoint:
        boto_options["s3"] = {"addressing_style": "path"}

    session = boto3.session.Session()
    try:
        client = session.client(
            "s3",
            endpoint_url=endpoint,
            aws_access_key_id=config.access_key or None,
            aws_secret_access_key=config.secret_key or None,
            region_name=config.region or DEFAULT_REGION,
            config=BotoConfig(**boto_options),
        )
    except (BotoCoreError, ValueError) as exc:
        raise StorageConfigError(f"Invalid object storage configuration: {exc}") from exc

    operator = StorageOperator(client, config.bucket, endpoint)
    logger.info("Storage operator configured: %r", operator)
    return operator


__all__ = ["DEFAULT_REGION", "StorageOperator", "get_storage_operator"]
