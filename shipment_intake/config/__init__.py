"""Configuration module — exports Settings and load_config."""

from shipment_intake.config.loader import load_config
from shipment_intake.config.settings import Settings

__all__ = ["Settings", "load_config"]
