"""Shipment order browsing and manual correction.

Back-office staff review what the extraction produced, search it, and
fix fields the model got wrong.  Edits go through :class:`ShipmentUpdate`
so identity, timestamps and provenance columns can never be changed.
"""

from __future__ import annotations

from shipment_intake.interfaces.record_store import SHIPMENT_ORDERS, IRecordStore
from shipment_intake.models.monitoring import ChangeAction, RecordChange
from shipment_intake.models.shipment import ShipmentRecord, ShipmentStatus, ShipmentUpdate
from shipment_intake.pipeline.change_notifier import ChangeNotifier
from shipment_intake.utils.errors import RecordNotFoundError
from shipment_intake.utils.logging import get_logger


class ShipmentService:
    """Read and edit access to ``shipment_orders``."""

    def __init__(
        self,
        record_store: IRecordStore,
        change_notifier: ChangeNotifier | None = None,
    ) -> None:
        self._store = record_store
        self._notifier = change_notifier
        self._logger = get_logger(__name__)

    async def list_shipments(
        self,
        search: str | None = None,
        status: ShipmentStatus | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[ShipmentRecord]:
        """Return shipments newest first.

        ``search`` matches customer name, address or tracking id
        case-insensitively; ``status`` filters exactly.
        """
        filters = {"status": status} if status is not None else None
        rows = await self._store.select(
            SHIPMENT_ORDERS,
            filters=filters,
            search=search,
            limit=limit,
            offset=offset,
        )
        return [ShipmentRecord.from_row(r) for r in rows]

    async def get_shipment(self, shipment_id: str) -> ShipmentRecord:
        row = await self._store.get(SHIPMENT_ORDERS, shipment_id)
        if row is None:
            raise RecordNotFoundError(
                f"Shipment {shipment_id} not found", self._store.get_provider_name()
            )
        return ShipmentRecord.from_row(row)

    async def update_shipment(self, shipment_id: str, update: ShipmentUpdate) -> ShipmentRecord:
        """Apply a manual edit and return the stored result.

        Raises
        ------
        RecordNotFoundError
            If *shipment_id* does not exist.
        """
        changes = update.changes()
        row = await self._store.update(SHIPMENT_ORDERS, shipment_id, changes)
        if row is None:
            # Unconditional updates only return None if the row vanished mid-write.
            raise RecordNotFoundError(
                f"Shipment {shipment_id} not found", self._store.get_provider_name()
            )

        self._logger.info("shipment_updated", shipment_id=shipment_id, fields=sorted(changes))
        if self._notifier is not None:
            await self._notifier.notify(
                RecordChange(
                    table=SHIPMENT_ORDERS,
                    action=ChangeAction.UPDATE,
                    record_id=shipment_id,
                    record=row,
                )
            )
        return ShipmentRecord.from_row(row)
