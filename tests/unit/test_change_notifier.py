"""Unit tests for ChangeNotifier."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from shipment_intake.models.monitoring import ChangeAction, RecordChange
from shipment_intake.pipeline.change_notifier import ALL_TABLES, ChangeNotifier


def _change(table: str = "shipment_orders") -> RecordChange:
    return RecordChange(table=table, action=ChangeAction.INSERT, record_id="r1")


class TestChangeNotifier:
    @pytest.mark.asyncio
    async def test_sync_and_async_listeners(self) -> None:
        notifier = ChangeNotifier()
        sync_cb = MagicMock()
        async_cb = AsyncMock()
        notifier.register_listener("shipment_orders", sync_cb)
        notifier.register_listener("shipment_orders", async_cb)

        change = _change()
        await notifier.notify(change)

        sync_cb.assert_called_once_with(change)
        async_cb.assert_awaited_once_with(change)

    @pytest.mark.asyncio
    async def test_table_scoping_and_wildcard(self) -> None:
        notifier = ChangeNotifier()
        shipments_cb = MagicMock()
        logs_cb = MagicMock()
        all_cb = MagicMock()
        notifier.register_listener("shipment_orders", shipments_cb)
        notifier.register_listener("parsing_logs", logs_cb)
        notifier.register_listener(ALL_TABLES, all_cb)

        await notifier.notify(_change("parsing_logs"))

        shipments_cb.assert_not_called()
        logs_cb.assert_called_once()
        all_cb.assert_called_once()

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_block_others(self) -> None:
        notifier = ChangeNotifier()
        notifier.register_listener(ALL_TABLES, MagicMock(side_effect=RuntimeError("boom")))
        healthy = AsyncMock()
        notifier.register_listener(ALL_TABLES, healthy)

        await notifier.notify(_change())

        healthy.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unregister(self) -> None:
        notifier = ChangeNotifier()
        cb = MagicMock()
        notifier.register_listener("shipment_orders", cb)
        notifier.register_listener("shipment_orders", cb)
        assert notifier.listener_count("shipment_orders") == 1

        notifier.unregister_listener("shipment_orders", cb)
        notifier.unregister_listener("shipment_orders", cb)
        await notifier.notify(_change())

        cb.assert_not_called()
        assert notifier.listener_count() == 0
