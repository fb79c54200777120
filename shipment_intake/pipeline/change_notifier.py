"""Record change notification with callback-based listeners.

Every successful mutation of the record store (parsing log created or
resolved, shipment inserted or edited) is published as a
:class:`RecordChange`.  Listeners subscribe per table name, or to ``"*"``
for every table, so a dashboard can refresh without polling.

    ExtractionService ──notify()──→ ChangeNotifier ──callback()──→ WebSocket handler
    ShipmentService   ──notify()──↗                ──callback()──→ (any other listener)

Listener errors are logged and skipped: a dropped WebSocket must never
fail the mutation that triggered the notification.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import structlog

from shipment_intake.models.monitoring import RecordChange
from shipment_intake.utils.logging import get_logger

ALL_TABLES = "*"


class ChangeNotifier:
    """Broadcasts committed record changes to registered callbacks.

    Callbacks receive a single :class:`RecordChange` argument and may be
    sync or async.
    """

    def __init__(self) -> None:
        # Per-table list of listener callbacks; ALL_TABLES receives everything.
        self._listeners: dict[str, list[Callable]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def register_listener(self, table: str, callback: Callable) -> None:
        """Register *callback* for changes on *table* (or ``"*"`` for all)."""
        listeners = self._listeners.setdefault(table, [])
        if callback not in listeners:
            listeners.append(callback)
            self._logger.debug(
                "listener_registered",
                table=table,
                total_listeners=len(listeners),
            )

    def unregister_listener(self, table: str, callback: Callable) -> None:
        """Remove a previously registered callback."""
        listeners = self._listeners.get(table, [])
        if callback in listeners:
            listeners.remove(callback)
            self._logger.debug(
                "listener_unregistered",
                table=table,
                remaining_listeners=len(listeners),
            )

    def listener_count(self, table: str | None = None) -> int:
        if table is not None:
            return len(self._listeners.get(table, []))
        return sum(len(v) for v in self._listeners.values())

    async def notify(self, change: RecordChange) -> None:
        """Deliver *change* to the table's listeners, then to wildcard listeners."""
        self._logger.debug(
            "record_change",
            table=change.table,
            action=change.action.value,
            record_id=change.record_id,
        )
        # Copy so a callback may unregister itself during delivery.
        listeners = list(self._listeners.get(change.table, []))
        if change.table != ALL_TABLES:
            listeners += self._listeners.get(ALL_TABLES, [])

        for callback in listeners:
            try:
                result = callback(change)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    table=change.table,
                    record_id=change.record_id,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
