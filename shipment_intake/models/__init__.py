"""Pydantic v2 domain models for the shipment intake service.

- **extraction** -- ingestion inputs, the audit attempt, the validated
  model output and the typed extraction failure.
- **shipment** -- the persisted shipment order and its manual-edit payload.
- **monitoring** -- change notifications and dashboard statistics.
"""

from shipment_intake.models.extraction import (
    AttemptStatus,
    ExtractedShipment,
    ExtractionAttempt,
    ExtractionFailure,
    FailureReason,
    FileSource,
    NormalizedInput,
    TextSource,
)
from shipment_intake.models.monitoring import ChangeAction, RecordChange, SystemStats
from shipment_intake.models.shipment import ShipmentRecord, ShipmentStatus, ShipmentUpdate

__all__ = [
    "AttemptStatus",
    "ChangeAction",
    "ExtractedShipment",
    "ExtractionAttempt",
    "ExtractionFailure",
    "FailureReason",
    "FileSource",
    "NormalizedInput",
    "RecordChange",
    "ShipmentRecord",
    "ShipmentStatus",
    "ShipmentUpdate",
    "SystemStats",
    "TextSource",
]
