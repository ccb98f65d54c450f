"""
S3 object store helpers (boto3).

boto3 is blocking, so every call is pushed to a worker thread to keep the
event loop free. The client is created on first use.
"""

from __future__ import annotations

import asyncio
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError


class ObjectStoreError(RuntimeError):
    pass


class S3ObjectStore:
    def __init__(
        self,
        *,
        bucket: str,
        region: str = "us-east-1",
        timeout_s: float = 20.0,
        client: Any = None,
    ) -> None:
        bucket = (bucket or "").strip()
        if not bucket:
            raise ObjectStoreError("S3 bucket name is empty.")
        self.bucket = bucket
        self.region = region
        self.timeout_s = timeout_s
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = boto3.client(
                "s3",
                region_name=self.region,
                config=Config(
                    connect_timeout=self.timeout_s,
                    read_timeout=self.timeout_s,
                    # Uploads are not retried; failures go back to the caller.
                    retries={"max_attempts": 1, "mode": "standard"},
                ),
            )
        return self._client

    def _put_sync(self, key: str, data: bytes, content_type: str) -> dict[str, Any]:
        try:
            return self._get_client().put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type or "application/octet-stream",
            )
        except (BotoCoreError, ClientError) as e:
            raise ObjectStoreError(f"S3 put_object failed for {key}: {e}") from e

    async def put(self, key: str, data: bytes, content_type: str) -> dict[str, Any]:
        return await asyncio.to_thread(self._put_sync, key, data, content_type)

    def url_for(self, key: str) -> str:
        return f"s3://{self.bucket}/{key}"
