"""Command-line tools for the shipment intake service."""
