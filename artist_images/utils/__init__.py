"""Utility modules for the artist image service.

- **errors** -- Domain exception hierarchy rooted at ArtistImageError.  The
  resolver absorbs storage errors and only lets InvalidInputError and
  SourceUnavailableError reach its callers.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
"""

from artist_images.utils.errors import (
    ArtistImageError,
    BlobStoreError,
    CacheStoreError,
    ConfigurationError,
    InvalidInputError,
    SourceUnavailableError,
)
from artist_images.utils.logging import configure_logging, get_logger

__all__ = [
    "ArtistImageError",
    "BlobStoreError",
    "CacheStoreError",
    "ConfigurationError",
    "InvalidInputError",
    "SourceUnavailableError",
    "configure_logging",
    "get_logger",
]
