"""Local-disk file store.

Writes uploaded documents under ``data/shipment-files`` and serves them
back through the API at ``{public_base_url}/api/v1/files/{key}``.  Disk
I/O runs in a worker thread so the event loop is never blocked.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog

from shipment_intake.interfaces.file_store import IFileStore, StoredFile
from shipment_intake.utils.errors import RecordNotFoundError, StoreError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_ROOT = Path("data/shipment-files")
_PROVIDER = "local-files"


class LocalFileStore(IFileStore):
    """Flat key/value file storage rooted at a single directory."""

    def __init__(
        self,
        root_dir: str | Path = _DEFAULT_ROOT,
        public_base_url: str = "http://localhost:8000",
    ) -> None:
        self._root = Path(root_dir)
        self._public_base_url = public_base_url.rstrip("/")

    async def put(self, key: str, data: bytes, content_type: str | None = None) -> StoredFile:
        path = self._resolve(key)
        try:
            await asyncio.to_thread(self._write, path, data)
        except OSError as exc:
            raise StoreError(f"Failed to write {key}: {exc}", _PROVIDER) from exc

        logger.info("file_stored", key=key, size=len(data), content_type=content_type)
        return StoredFile(path=str(path), public_url=self.public_url(key))

    async def get(self, key: str) -> bytes:
        path = self._resolve(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError:
            raise RecordNotFoundError(f"No stored file {key}", _PROVIDER) from None
        except OSError as exc:
            raise StoreError(f"Failed to read {key}: {exc}", _PROVIDER) from exc

    def public_url(self, key: str) -> str:
        return f"{self._public_base_url}/api/v1/files/{key}"

    def get_provider_name(self) -> str:
        return _PROVIDER

    def _resolve(self, key: str) -> Path:
        """Map *key* to a path inside the root, rejecting anything that escapes it."""
        if not key or key in (".", "..") or "/" in key or "\\" in key or "\x00" in key:
            raise StoreError(f"Invalid file key {key!r}", _PROVIDER)
        return self._root / key

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        # Exclusive create: keys are unique per upload and never overwritten.
        with open(path, "xb") as f:
            f.write(data)
