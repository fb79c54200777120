"""Shipment intake: AI-assisted extraction of shipment orders from documents."""

__version__ = "0.1.0"
