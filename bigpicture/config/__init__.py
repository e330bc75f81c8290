"""Configuration for Big Picture Auction."""

from bigpicture.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
