"""Business services for the shipment intake flow."""

from shipment_intake.services.extraction_service import ExtractionService
from shipment_intake.services.ingestion_adapter import IngestionAdapter
from shipment_intake.services.monitoring_service import MonitoringService
from shipment_intake.services.shipment_service import ShipmentService

__all__ = [
    "ExtractionService",
    "IngestionAdapter",
    "MonitoringService",
    "ShipmentService",
]
