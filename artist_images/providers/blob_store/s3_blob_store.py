"""S3-compatible blob store (MinIO in deployment).

Implements IBlobStore on top of ``boto3``.  The boto3 client is
synchronous, so every call is dispatched with ``asyncio.to_thread`` to
keep the event loop free.  Public URLs are plain
``<public endpoint>/<bucket>/<key>`` paths; the bucket gets a public-read
policy at startup.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from artist_images.interfaces.blob_store import IBlobStore
from artist_images.utils.errors import BlobStoreError
from artist_images.utils.logging import get_logger

_PROVIDER_NAME = "minio"
_DEFAULT_TIMEOUT = 10.0
_MISSING_BUCKET_CODES = frozenset({"404", "NoSuchBucket", "NotFound"})


def _public_read_policy(bucket: str) -> str:
    return json.dumps({
        "Version": "2012-10-17",
        "Statement": [{
            "Effect": "Allow",
            "Principal": {"AWS": ["*"]},
            "Action": ["s3:GetObject"],
            "Resource": [f"arn:aws:s3:::{bucket}/*"],
        }],
    })


class S3BlobStore(IBlobStore):
    """Blob store backed by an S3 API endpoint.

    Parameters
    ----------
    endpoint:
        ``host:port`` of the S3 API (e.g. ``minio:9000``).
    bucket:
        Bucket that receives artist images.
    public_endpoint:
        ``host[:port]`` clients use to fetch objects.  Defaults to *endpoint*.
    use_ssl:
        Selects ``https`` for both the API and the public URLs.
    client:
        Pre-built boto3 S3 client; built from the other arguments when omitted.
    """

    def __init__(
        self,
        endpoint: str,
        bucket: str,
        access_key: str = "",
        secret_key: str = "",
        public_endpoint: str = "",
        use_ssl: bool = False,
        timeout: float = _DEFAULT_TIMEOUT,
        client: Any | None = None,
    ) -> None:
        self._bucket = bucket
        self._scheme = "https" if use_ssl else "http"
        self._public_endpoint = (public_endpoint or endpoint).rstrip("/")
        self._client = client or boto3.client(
            "s3",
            endpoint_url=f"{self._scheme}://{endpoint}",
            aws_access_key_id=access_key or None,
            aws_secret_access_key=secret_key or None,
            region_name="us-east-1",
            config=Config(
                signature_version="s3v4",
                s3={"addressing_style": "path"},
                connect_timeout=timeout,
                read_timeout=timeout,
                retries={"max_attempts": 2},
            ),
        )
        self._logger = get_logger(__name__)

    @property
    def bucket(self) -> str:
        return self._bucket

    # -- Sync helpers (executed via asyncio.to_thread) -------------------------

    def _ensure_bucket_sync(self) -> bool:
        """Create the bucket when missing; return ``True`` if it was created."""
        try:
            self._client.head_bucket(Bucket=self._bucket)
            return False
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code not in _MISSING_BUCKET_CODES:
                raise
        self._client.create_bucket(Bucket=self._bucket)
        return True

    # -- IBlobStore implementation ---------------------------------------------

    async def ensure_bucket(self) -> None:
        try:
            created = await asyncio.to_thread(self._ensure_bucket_sync)
        except (BotoCoreError, ClientError) as exc:
            raise BlobStoreError(
                message=f"failed to check bucket {self._bucket!r}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        if created:
            self._logger.info("blob_bucket_created", bucket=self._bucket)

        try:
            await asyncio.to_thread(
                self._client.put_bucket_policy,
                Bucket=self._bucket,
                Policy=_public_read_policy(self._bucket),
            )
        except (BotoCoreError, ClientError) as exc:
            # Public URLs 403 until the bucket is made readable by other means.
            self._logger.warning("blob_bucket_policy_failed", bucket=self._bucket, error=str(exc))

    async def put_object(self, key: str, data: bytes, content_type: str) -> str:
        try:
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=self._bucket,
                Key=key,
                Body=data,
                ContentLength=len(data),
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            raise BlobStoreError(
                message=f"failed to upload {key!r}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        self._logger.info("blob_uploaded", bucket=self._bucket, key=key, size=len(data))
        return key

    def public_url(self, key: str) -> str:
        return f"{self._scheme}://{self._public_endpoint}/{self._bucket}/{key}"

    def get_provider_name(self) -> str:
        return _PROVIDER_NAME
