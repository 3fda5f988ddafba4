"""SQLite-backed artist image cache store.

Persists one row per normalized artist name in the ``artist_images``
table.  Uses ``aiosqlite`` for async I/O and opens a connection per
operation, so concurrent requests never share cursor state; SQLite's own
locking makes each upsert atomic.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from artist_images.interfaces.image_cache_store import IImageCacheStore
from artist_images.models.image_record import CachedImageRecord, normalize_artist_key
from artist_images.utils.errors import CacheStoreError
from artist_images.utils.logging import get_logger

_DEFAULT_DB_PATH = Path("data/artist_images.db")
_PROVIDER_NAME = "sqlite"

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS artist_images (
    artist_name_lower TEXT    PRIMARY KEY,
    artist_name       TEXT    NOT NULL,
    image_key         TEXT    NOT NULL,
    url               TEXT    NOT NULL,
    source            TEXT    NOT NULL,
    fetched_at        INTEGER NOT NULL
);
"""

_UPSERT_SQL = """\
INSERT INTO artist_images (artist_name_lower, artist_name, image_key, url, source, fetched_at)
VALUES (?, ?, ?, ?, ?, ?)
ON CONFLICT(artist_name_lower)
DO UPDATE SET artist_name = excluded.artist_name,
              image_key   = excluded.image_key,
              url         = excluded.url,
              source      = excluded.source,
              fetched_at  = excluded.fetched_at;
"""

_SELECT_SQL = """\
SELECT artist_name, image_key, url, source, fetched_at
FROM artist_images
WHERE artist_name_lower = ?;
"""

_COUNT_SQL = "SELECT COUNT(*) FROM artist_images;"


class SQLiteImageCacheStore(IImageCacheStore):
    """SQLite persistence for :class:`CachedImageRecord`."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)
        self._logger = get_logger(__name__)

    async def initialize(self) -> None:
        """Create the table if it does not exist and log the current size."""
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_CREATE_TABLE_SQL)
                await db.commit()
        except (aiosqlite.Error, OSError) as exc:
            raise CacheStoreError(
                message=f"failed to initialize database at {self._db_path}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        self._logger.info(
            "image_cache_db_initialized",
            path=str(self._db_path),
            cached_artists=await self.count(),
        )

    async def lookup(self, artist_name: str) -> CachedImageRecord | None:
        key = normalize_artist_key(artist_name)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(_SELECT_SQL, (key,))
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise CacheStoreError(
                message=f"failed to read cache entry for {key!r}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        if row is None:
            return None

        return CachedImageRecord(
            artist_name=row["artist_name"],
            image_key=row["image_key"],
            url=row["url"],
            source=row["source"],
            fetched_at=datetime.fromtimestamp(row["fetched_at"], tz=timezone.utc),  # noqa: UP017
        )

    async def upsert(self, record: CachedImageRecord) -> None:
        params = (
            record.normalized_key,
            record.artist_name,
            record.image_key,
            record.url,
            record.source,
            int(record.fetched_at.timestamp()),
        )
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_UPSERT_SQL, params)
                await db.commit()
        except aiosqlite.Error as exc:
            raise CacheStoreError(
                message=f"failed to save cache entry for {record.normalized_key!r}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        self._logger.debug("image_cache_upserted", key=record.normalized_key, image_key=record.image_key)

    async def count(self) -> int:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(_COUNT_SQL)
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise CacheStoreError(
                message=f"failed to count cache entries: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc
        return int(row[0]) if row else 0

    def get_provider_name(self) -> str:
        return _PROVIDER_NAME
