"""Object storage for user-submitted product images."""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import GlutenPeekConfig
    from ..models import ImageBlob


def object_key(path_prefix: str, blob: ImageBlob) -> str:
    """Build a unique key such as ``products/0001/<uuid>.jpg``."""
    prefix = path_prefix.strip("/")
    name = f"{uuid.uuid4()}.{blob.extension}"
    return f"{prefix}/{name}" if prefix else name


class ObjectStore(ABC):
    """Stores an image and returns a public URL for it."""

    @abstractmethod
    async def upload(self, blob: ImageBlob, path_prefix: str) -> str:
        ...


def create_object_store(config: GlutenPeekConfig) -> ObjectStore:
    """Create an object store based on configuration."""
    backend_name = config.storage.backend

    match backend_name:
        case "local":
            from .local import LocalObjectStore

            return LocalObjectStore(
                directory=config.storage.local.directory,
                base_url=config.storage.local.base_url,
            )
        case "s3":
            from .s3 import S3ObjectStore

            s3 = config.storage.s3
            return S3ObjectStore(
                bucket=s3.bucket,
                region=s3.region,
                public_url=s3.public_url,
                access_key_id=s3.access_key_id,
                secret_access_key=s3.secret_access_key,
            )
        case "gdrive":
            from .gdrive import GoogleDriveObjectStore

            return GoogleDriveObjectStore(
                credentials_path=config.storage.gdrive.credentials_path,
                token_path=config.storage.gdrive.token_path,
                folder_id=config.storage.gdrive.folder_id,
            )
        case _:
            raise ValueError(
                f"Unknown storage backend: {backend_name!r} (choose local, s3 or gdrive)"
            )
