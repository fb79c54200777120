"""HTTP and WebSocket surface of the shipment intake service."""
