"""Filesystem object store, for development and single-host installs."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING

from . import ObjectStore, object_key

if TYPE_CHECKING:
    from ..models import ImageBlob


class LocalObjectStore(ObjectStore):
    """Writes images under a directory and returns file:// or base_url links."""

    def __init__(
        self, directory: str | Path = "~/.config/glutenpeek/images", base_url: str = ""
    ) -> None:
        self._directory = Path(directory).expanduser()
        self._base_url = base_url.rstrip("/")

    async def upload(self, blob: ImageBlob, path_prefix: str) -> str:
        key = object_key(path_prefix, blob)
        target = self._directory / key
        await asyncio.to_thread(self._write, target, blob.data)
        if self._base_url:
            return f"{self._base_url}/{key}"
        return target.resolve().as_uri()

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
