"""Public interface definitions for all external collaborators.

Every external service the intake pipeline touches is accessed through the
abstract base classes defined in this package.  Concrete adapters live in
``shipment_intake/providers/`` and are injected at construction time by
``shipment_intake/main.py``, so tests can substitute fakes.

CONCRETE PROVIDER MAP:
    Interface       →  Concrete implementations
    ─────────────────────────────────────────────
    ILLMProvider    →  OpenAILLMProvider, OllamaLLMProvider
    IRecordStore    →  SQLiteRecordStore
    IFileStore      →  LocalFileStore
"""

from shipment_intake.interfaces.file_store import IFileStore, StoredFile
from shipment_intake.interfaces.llm_provider import ILLMProvider
from shipment_intake.interfaces.record_store import PARSING_LOGS, SHIPMENT_ORDERS, IRecordStore

__all__ = [
    "IFileStore",
    "ILLMProvider",
    "IRecordStore",
    "PARSING_LOGS",
    "SHIPMENT_ORDERS",
    "StoredFile",
]
