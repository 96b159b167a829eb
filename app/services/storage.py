"""
PDF storage.

- generate_unique_filename("My Document.pdf") -> "my-document-<ts>-<rand>.pdf"
- LocalStorage keeps files under <root>/public/ and hands back that relative
  path. Paths are opaque to everyone else: only url_for() turns one into
  something a viewer can open.
"""

from __future__ import annotations

import asyncio
import secrets
import time
from pathlib import Path
from typing import Protocol, Union

from app.util.exceptions import StorageError
from app.util.logger import get_logger
from extraction.patterns import FILENAME_UNSAFE_PAT


class Storage(Protocol):
    async def store(self, filename: str, data: bytes) -> str:
        ...

    def url_for(self, path: str) -> str:
        ...


def generate_unique_filename(original_name: str) -> str:
    """Sanitized base name + timestamp + short random suffix, extension kept."""
    name = Path(original_name).name
    stem, dot, ext = name.rpartition(".")
    if not dot or not stem:
        stem, ext = name, "pdf"
    safe = FILENAME_UNSAFE_PAT.sub("-", stem.lower()).strip("-") or "document"
    return f"{safe}-{int(time.time() * 1000)}-{secrets.token_hex(4)}.{ext.lower()}"


class LocalStorage:
    """Files on local disk, e.g. `.tmp_uploads/public/<unique name>.pdf`."""

    PREFIX = "public"

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def _abs(self, path: str) -> Path:
        return self.root / path

    async def store(self, filename: str, data: bytes) -> str:
        logger = get_logger("storage")
        path = f"{self.PREFIX}/{generate_unique_filename(filename)}"
        target = self._abs(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(target.write_bytes, data)
        except OSError as e:
            logger.error(f"Upload of {filename} failed: {e}")
            raise StorageError(f"Failed to store {filename}: {e}", original_error=e) from e
        logger.info(f"Stored {filename} as {path}")
        return path

    def url_for(self, path: str) -> str:
        return self._abs(path).resolve().as_uri()

    def local_path(self, path: str) -> Path:
        return self._abs(path)

    async def delete(self, path: str) -> None:
        target = self._abs(path)
        try:
            await asyncio.to_thread(target.unlink)
        except FileNotFoundError as e:
            raise StorageError(f"No stored file at {path}", original_error=e) from e
        get_logger("storage").info(f"Deleted {path}")
