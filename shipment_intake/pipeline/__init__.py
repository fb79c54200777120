"""Pipeline composition and change notification.

- **orchestrator** -- ``ShipmentIntakePipeline``: ingest, then extract.
- **change_notifier** -- ``ChangeNotifier``: observer hub for committed
  record changes (feeds the ``/ws/changes`` WebSocket).
"""

from shipment_intake.pipeline.change_notifier import ALL_TABLES, ChangeNotifier

__all__ = ["ALL_TABLES", "ChangeNotifier"]
