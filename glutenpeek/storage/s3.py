"""AWS S3 object store."""

from __future__ import annotations

import asyncio
import io
from typing import TYPE_CHECKING

from . import ObjectStore, object_key

if TYPE_CHECKING:
    from ..models import ImageBlob


class S3ObjectStore(ObjectStore):
    """Upload images to a public-read S3 bucket."""

    def __init__(
        self,
        bucket: str,
        region: str = "",
        public_url: str = "",
        access_key_id: str = "",
        secret_access_key: str = "",
    ) -> None:
        self._bucket = bucket
        self._region = region
        self._public_url = public_url.rstrip("/")
        self._access_key_id = access_key_id
        self._secret_access_key = secret_access_key
        self._client = None

    def _get_client(self):
        if self._client is not None:
            return self._client

        if not self._bucket:
            raise ValueError("AWS S3 bucket name is not configured")
        if not self._region:
            raise ValueError("AWS S3 region is not configured")

        try:
            import boto3
        except ImportError:
            raise ImportError(
                "boto3 is required for S3 storage: pip install 'glutenpeek[s3]'"
            ) from None

        kwargs: dict = {"service_name": "s3", "region_name": self._region}
        if self._access_key_id and self._secret_access_key:
            kwargs["aws_access_key_id"] = self._access_key_id
            kwargs["aws_secret_access_key"] = self._secret_access_key
        self._client = boto3.client(**kwargs)
        return self._client

    def file_url(self, key: str) -> str:
        if self._public_url:
            return f"{self._public_url}/{key}"
        return f"https://{self._bucket}.s3.{self._region}.amazonaws.com/{key}"

    async def upload(self, blob: ImageBlob, path_prefix: str) -> str:
        client = self._get_client()
        key = object_key(path_prefix, blob)
        await asyncio.to_thread(
            client.upload_fileobj,
            io.BytesIO(blob.data),
            self._bucket,
            key,
            ExtraArgs={"ContentType": blob.content_type, "ACL": "public-read"},
        )
        return self.file_url(key)
