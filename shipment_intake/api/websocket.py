"""WebSocket endpoint pushing record changes to dashboards.

A client connects to ``/ws/changes`` (optionally ``?table=shipment_orders``)
and receives one JSON message per committed change:

    {"table": "parsing_logs", "action": "update", "record_id": "...",
     "record": {...}, "occurred_at": "..."}

The connection is kept open by reading client keep-alive frames; the
listener is removed from the :class:`ChangeNotifier` on disconnect.
"""

from __future__ import annotations

import structlog
from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from shipment_intake.models.monitoring import RecordChange
from shipment_intake.pipeline.change_notifier import ALL_TABLES, ChangeNotifier
from shipment_intake.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


async def websocket_changes(websocket: WebSocket, table: str = ALL_TABLES) -> None:
    """Stream :class:`RecordChange` messages for *table* until the client leaves."""
    notifier: ChangeNotifier = websocket.app.state.change_notifier

    await websocket.accept()
    _logger.info("websocket_connected", table=table)

    async def _on_change(change: RecordChange) -> None:
        # Errors raised here are logged by the notifier; the finally block
        # below removes the listener once the receive loop notices the drop.
        if websocket.client_state is WebSocketState.CONNECTED:
            await websocket.send_json(change.model_dump(mode="json"))

    notifier.register_listener(table, _on_change)

    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        _logger.info("websocket_disconnected", table=table)
    finally:
        notifier.unregister_listener(table, _on_change)
        _logger.debug("websocket_listener_cleaned_up", table=table)
