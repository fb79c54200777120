"""File store adapters."""

from shipment_intake.providers.file_store.local_file_store import LocalFileStore

__all__ = ["LocalFileStore"]
