"""Pydantic response schemas for the artist image API.

The JSON shapes match what existing clients of the service consume:
``success`` is always present, every other key is omitted when unset
(routes serialize with ``exclude_none=True``).
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from artist_images.models.image_record import CachedImageRecord


class ArtistImageResponse(BaseModel):
    """Body of ``GET /api/artist-image`` for both success and failure."""

    success: bool
    image_url: str | None = None
    source: str | None = None
    cached_at: datetime | None = None
    artist_name: str | None = None
    error: str | None = None

    @classmethod
    def from_record(cls, record: CachedImageRecord) -> ArtistImageResponse:
        return cls(
            success=True,
            image_url=record.url,
            source=record.source,
            cached_at=record.fetched_at,
            artist_name=record.artist_name,
        )


class StatsResponse(BaseModel):
    """Body of ``GET /api/stats``."""

    cached_artists: int
    bucket: str
    storage: str
    database: str


class ErrorResponse(BaseModel):
    """Sanitized body for unexpected application errors."""

    success: bool = False
    error: str
    detail: str | None = None
