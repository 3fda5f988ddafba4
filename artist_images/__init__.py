"""Artist image service: resolve artist names to cached, publicly servable image URLs."""

__version__ = "0.1.0"
