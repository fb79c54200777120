"""Unit tests for ShipmentService: listing, search, and manual edits."""

from __future__ import annotations

from datetime import date

import pytest

from shipment_intake.interfaces.record_store import SHIPMENT_ORDERS
from shipment_intake.models.monitoring import ChangeAction, RecordChange
from shipment_intake.models.shipment import ShipmentStatus, ShipmentUpdate
from shipment_intake.services.shipment_service import ShipmentService
from shipment_intake.utils.errors import RecordNotFoundError


async def _seed(store, **fields) -> dict:
    row = {"customer_name": "Jane Doe", "address": "12 Oak St", "status": "pending"}
    row.update(fields)
    return await store.insert(SHIPMENT_ORDERS, row)


class TestListShipments:
    @pytest.mark.asyncio
    async def test_search_and_status_filter(self, record_store) -> None:
        await _seed(record_store, customer_name="Jane Doe", tracking_id="XZ100")
        await _seed(record_store, customer_name="Janet Smith", status="shipped")
        await _seed(record_store, customer_name="Bob", address="9 Elm Rd")
        service = ShipmentService(record_store)

        jan = await service.list_shipments(search="JAN")
        assert {s.customer_name for s in jan} == {"Jane Doe", "Janet Smith"}

        shipped = await service.list_shipments(search="jan", status=ShipmentStatus.SHIPPED)
        assert [s.customer_name for s in shipped] == ["Janet Smith"]

        by_tracking = await service.list_shipments(search="xz1")
        assert [s.customer_name for s in by_tracking] == ["Jane Doe"]

    @pytest.mark.asyncio
    async def test_newest_first_with_paging(self, record_store) -> None:
        for name in ("A", "B", "C"):
            await _seed(record_store, customer_name=name)
        service = ShipmentService(record_store)

        assert [s.customer_name for s in await service.list_shipments()] == ["C", "B", "A"]
        assert [s.customer_name for s in await service.list_shipments(limit=1, offset=1)] == ["B"]


class TestGetShipment:
    @pytest.mark.asyncio
    async def test_get_existing(self, record_store) -> None:
        row = await _seed(record_store)
        record = await ShipmentService(record_store).get_shipment(row["id"])
        assert record.customer_name == "Jane Doe"

    @pytest.mark.asyncio
    async def test_get_missing_raises(self, record_store) -> None:
        with pytest.raises(RecordNotFoundError):
            await ShipmentService(record_store).get_shipment("nope")


class TestUpdateShipment:
    @pytest.mark.asyncio
    async def test_partial_edit(self, record_store, notifier) -> None:
        row = await _seed(record_store, tracking_id="OLD")
        seen: list[RecordChange] = []
        notifier.register_listener(SHIPMENT_ORDERS, seen.append)
        service = ShipmentService(record_store, notifier)

        updated = await service.update_shipment(
            row["id"],
            ShipmentUpdate(
                tracking_id="NEW", delivery_date=date(2025, 5, 1), status=ShipmentStatus.SHIPPED
            ),
        )

        assert updated.tracking_id == "NEW"
        assert updated.delivery_date == date(2025, 5, 1)
        assert updated.status is ShipmentStatus.SHIPPED
        assert updated.customer_name == "Jane Doe"
        assert updated.updated_at >= updated.created_at
        assert updated.parsed_by_ai is True
        assert len(seen) == 1
        assert seen[0].action is ChangeAction.UPDATE
        assert seen[0].record_id == row["id"]

    @pytest.mark.asyncio
    async def test_clear_optional_field(self, record_store) -> None:
        row = await _seed(record_store, notes="old note")
        updated = await ShipmentService(record_store).update_shipment(
            row["id"], ShipmentUpdate.model_validate({"notes": None})
        )
        assert updated.notes is None

    @pytest.mark.asyncio
    async def test_update_missing_raises(self, record_store) -> None:
        with pytest.raises(RecordNotFoundError):
            await ShipmentService(record_store).update_shipment(
                "nope", ShipmentUpdate(notes="x")
            )
