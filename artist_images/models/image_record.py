"""Cached image record and the key rules shared by every storage path.

:class:`CachedImageRecord` is the persisted unit: one row per normalized
artist name.  The helpers below are the only places where a cache key or a
blob object key is derived, so the lookup and upsert paths cannot drift
apart.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_CONTENT_TYPE = "image/jpeg"

# Substring of the declared content type -> object key extension.
_EXTENSIONS: tuple[tuple[str, str], ...] = (
    ("png", ".png"),
    ("webp", ".webp"),
    ("gif", ".gif"),
)


def normalize_artist_key(artist_name: str) -> str:
    """Return the cache identity for *artist_name* (trimmed, lower-cased)."""
    return artist_name.strip().lower()


def extension_for_content_type(content_type: str | None) -> str:
    """Map a declared ``Content-Type`` to a file extension, ``.jpg`` by default."""
    lowered = (content_type or "").lower()
    for marker, ext in _EXTENSIONS:
        if marker in lowered:
            return ext
    return ".jpg"


def build_object_key(artist_name: str, fetched_at: datetime, content_type: str | None) -> str:
    """Build the blob object key for an image fetched at *fetched_at*.

    The key combines the display name (path separators replaced) with the
    unix timestamp of the fetch, e.g. ``Radiohead_1700000000.jpg``, so a
    refresh never overwrites the previous object.
    """
    safe_name = artist_name.strip().replace("/", "_").replace("\\", "_")
    return f"{safe_name}_{int(fetched_at.timestamp())}{extension_for_content_type(content_type)}"


def utc_now() -> datetime:
    """Current UTC time truncated to whole seconds (the persisted precision)."""
    return datetime.now(tz=timezone.utc).replace(microsecond=0)  # noqa: UP017


class CachedImageRecord(BaseModel):
    """A resolved artist image, as stored in the cache table.

    Attributes
    ----------
    artist_name:
        Display form of the name, as supplied by the first caller.
    image_key:
        Object key in the blob store, or ``""`` when the durable upload did
        not happen and ``url`` points straight at the image source.
    url:
        URL clients should use -- a blob store public URL or the source URL.
    source:
        Identifier of the image source that produced the entry.
    fetched_at:
        When the record was created or last refreshed (UTC, whole seconds).
    """

    model_config = ConfigDict(frozen=True)

    artist_name: str = Field(min_length=1)
    image_key: str = ""
    url: str = Field(min_length=1)
    source: str
    fetched_at: datetime

    @field_validator("fetched_at")
    @classmethod
    def normalize_fetched_at(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)  # noqa: UP017
        return value.astimezone(timezone.utc).replace(microsecond=0)  # noqa: UP017

    @property
    def normalized_key(self) -> str:
        return normalize_artist_key(self.artist_name)

    @property
    def is_durable(self) -> bool:
        """``True`` when the image lives in the blob store."""
        return self.image_key != ""

    def is_fresh(self, ttl: timedelta, now: datetime | None = None) -> bool:
        """Return ``True`` while the record is younger than *ttl*."""
        now = now or utc_now()
        return now - self.fetched_at < ttl
