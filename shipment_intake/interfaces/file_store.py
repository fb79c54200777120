"""Abstract base class for file store providers.

Defines the contract for persisting uploaded source documents.  The
ingestion adapter stores each upload under a unique key and keeps the
returned public URL as the shipment's file reference.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class StoredFile:
    """Location of a stored artifact."""

    path: str
    public_url: str


# Concrete implementation: LocalFileStore (shipment_intake/providers/file_store/)
class IFileStore(ABC):
    """Contract for uploaded-file storage."""

    @abstractmethod
    async def put(self, key: str, data: bytes, content_type: str | None = None) -> StoredFile:
        """Store *data* under *key* and return its location.

        Raises
        ------
        shipment_intake.utils.errors.StoreError
            If the key is invalid or the write is rejected.
        """

    @abstractmethod
    async def get(self, key: str) -> bytes:
        """Return the bytes stored under *key*.

        Raises
        ------
        shipment_intake.utils.errors.RecordNotFoundError
            If nothing is stored under *key*.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
