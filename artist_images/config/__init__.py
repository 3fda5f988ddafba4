"""Configuration module: exports Settings and load_config."""

from artist_images.config.loader import load_config
from artist_images.config.settings import Settings

__all__ = ["Settings", "load_config"]
