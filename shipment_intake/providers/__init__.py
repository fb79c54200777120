"""Concrete adapters for the interfaces in ``shipment_intake.interfaces``."""
