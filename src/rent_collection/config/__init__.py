"""Configuration module for rent collection."""

from rent_collection.config.logging import configure_logging
from rent_collection.config.settings import FlatSettings, get_settings

__all__ = ["FlatSettings", "get_settings", "configure_logging"]
