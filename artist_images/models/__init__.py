"""Domain models: re-exports the cached image record and key helpers."""

from __future__ import annotations

from artist_images.models.image_record import (
    DEFAULT_CONTENT_TYPE,
    CachedImageRecord,
    build_object_key,
    extension_for_content_type,
    normalize_artist_key,
    utc_now,
)

__all__ = [
    "DEFAULT_CONTENT_TYPE",
    "CachedImageRecord",
    "build_object_key",
    "extension_for_content_type",
    "normalize_artist_key",
    "utc_now",
]
