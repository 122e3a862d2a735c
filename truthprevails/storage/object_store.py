# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""
Object storage for uploaded file bytes.

Objects live under ``<prefix>/users/<owner>/<hash>/<upload id>/<file name>``
in an S3-compatible bucket. Every put gets a fresh upload id, so two uploads
of the same bytes never share a key. boto3 is blocking, so every call runs in
a worker thread.
"""

import asyncio
import logging
import re
import uuid
from dataclasses import dataclass
from typing import Optional, Union

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from truthprevails.shared.config import Settings
from truthprevails.shared.errors import Unavailable

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class StorageError(Exception):
    """The object store rejected or failed a request."""


@dataclass(frozen=True)
class StoredObject:
    key: str
    url: str


def new_upload_id() -> str:
    return uuid.uuid4().hex


def object_key(prefix: str, owner_id: str, content_hash: str, upload_id: str, file_name: str) -> str:
    safe_name = _UNSAFE_KEY_CHARS.sub("_", file_name).strip("_") or "file"
    return f"{prefix.strip('/')}/users/{owner_id}/{content_hash}/{upload_id}/{safe_name}"


class S3ObjectStore:
    """Thin async wrapper over a boto3 S3 client."""

    def __init__(
        self,
        bucket: str,
        prefix: str = "truth-prevails",
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        timeout: float = 15.0,
        client=None,
    ):
        self.bucket = bucket
        self.prefix = prefix
        self.timeout = timeout
        self.client = client or boto3.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url,
            config=Config(
                connect_timeout=timeout,
                read_timeout=timeout,
                retries={"max_attempts": 3, "mode": "standard"},
            ),
        )

    async def _call(self, fn, **kwargs):
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn, **kwargs), timeout=self.timeout * 4)
        except asyncio.TimeoutError as e:
            raise StorageError("Object storage timeout") from e
        except (BotoCoreError, ClientError) as e:
            raise StorageError(str(e)) from e

    async def put(
        self,
        owner_id: str,
        content_hash: str,
        file_name: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> StoredObject:
        key = object_key(self.prefix, owner_id, content_hash, new_upload_id(), file_name)
        await self._call(
            self.client.put_object,
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
            ServerSideEncryption="AES256",
        )
        logger.info(f"Stored {len(data)} bytes at s3://{self.bucket}/{key}")
        return StoredObject(key=key, url=f"s3://{self.bucket}/{key}")

    async def delete(self, key: str) -> None:
        await self._call(self.client.delete_object, Bucket=self.bucket, Key=key)
        logger.info(f"Deleted s3://{self.bucket}/{key}")

    async def presigned_url(self, key: str, expires_in: int = 3600) -> str:
        return await self._call(
            self.client.generate_presigned_url,
            ClientMethod="get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=expires_in,
        )


def build_object_store(settings: Settings) -> Union[S3ObjectStore, Unavailable]:
    if not settings.s3_bucket:
        logger.warning("Object storage disabled: S3_BUCKET is not set")
        return Unavailable("Object storage", "Missing configuration: S3_BUCKET")

    return S3ObjectStore(
        bucket=settings.s3_bucket,
        prefix=settings.s3_prefix,
        region=settings.s3_region,
        endpoint_url=settings.s3_endpoint_url,
        timeout=settings.storage_timeout_seconds,
    )
