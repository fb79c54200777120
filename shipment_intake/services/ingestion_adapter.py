"""Ingestion adapter: turns an upload or pasted text into a single text payload.

Uploaded bytes are decoded first and only then written to the file store,
so an unreadable upload never leaves an orphaned artifact behind.
Decoding is UTF-8 with undecodable sequences replaced; that is the
best-effort pass-through for PDFs and other binary formats, whose
readable fragments still reach the extraction call.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from pathlib import PurePosixPath, PureWindowsPath

from shipment_intake.interfaces.file_store import IFileStore
from shipment_intake.models.extraction import FileSource, NormalizedInput, TextSource
from shipment_intake.utils.errors import ReadError
from shipment_intake.utils.logging import get_logger

_REPLACEMENT_CHAR = "�"


def _epoch_millis() -> int:
    return int(time.time() * 1000)


class IngestionAdapter:
    """Normalizes :class:`FileSource` and :class:`TextSource` inputs."""

    def __init__(
        self,
        file_store: IFileStore,
        clock: Callable[[], int] = _epoch_millis,
    ) -> None:
        self._file_store = file_store
        self._clock = clock
        self._logger = get_logger(__name__)

    async def ingest(self, source: FileSource | TextSource) -> NormalizedInput:
        """Normalize *source* into text plus its file name and reference.

        Raises
        ------
        ReadError
            If the input is empty or yields no usable text.
        StoreError
            If the file store rejects the upload.
        """
        if isinstance(source, TextSource):
            return self._ingest_text(source)
        return await self._ingest_file(source)

    def _ingest_text(self, source: TextSource) -> NormalizedInput:
        if not source.content.strip():
            raise ReadError("Pasted text is empty")
        file_name = f"email-{self._clock()}.txt"
        self._logger.info("text_ingested", file_name=file_name, chars=len(source.content))
        return NormalizedInput(text=source.content, file_ref=None, file_name=file_name)

    async def _ingest_file(self, source: FileSource) -> NormalizedInput:
        file_name = _basename(source.name)
        if not source.data:
            raise ReadError(f"Uploaded file {file_name} is empty")

        text = decode_text(source.data)
        if not text.replace(_REPLACEMENT_CHAR, "").strip():
            raise ReadError(f"Uploaded file {file_name} contains no readable text")

        key = f"{self._clock()}-{file_name}"
        stored = await self._file_store.put(key, source.data, source.content_type)
        self._logger.info(
            "file_ingested",
            file_name=file_name,
            key=key,
            size=len(source.data),
            chars=len(text),
        )
        return NormalizedInput(text=text, file_ref=stored.public_url, file_name=file_name)


def decode_text(data: bytes) -> str:
    """Decode *data* as UTF-8, dropping a leading BOM and replacing bad bytes."""
    return data.decode("utf-8-sig", errors="replace")


def _basename(name: str) -> str:
    """Strip any client-supplied directory components from *name*."""
    base = PureWindowsPath(PurePosixPath(name).name).name.strip()
    if base in ("", ".", ".."):
        return "upload"
    return base
