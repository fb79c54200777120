"""Utility modules for the shipment intake service.

- **errors** -- Domain exception hierarchy rooted at ShipmentIntakeError;
  each collaborator raises its own subclass so callers can handle failures
  granularly without broad ``except Exception`` blocks.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
"""

from shipment_intake.utils.errors import (
    ConfigurationError,
    LogWriteError,
    ReadError,
    RecordNotFoundError,
    ShipmentIntakeError,
    StoreError,
    UpstreamError,
)
from shipment_intake.utils.logging import configure_logging, get_logger

__all__ = [
    "ConfigurationError",
    "LogWriteError",
    "ReadError",
    "RecordNotFoundError",
    "ShipmentIntakeError",
    "StoreError",
    "UpstreamError",
    "configure_logging",
    "get_logger",
]
