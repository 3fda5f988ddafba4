"""In-memory artist image cache store.

Dict-backed implementation of :class:`IImageCacheStore` for local
development and tests.  Entries never expire on their own; freshness is
the resolver's decision, exactly as with the SQLite store.  Not shared
across processes.
"""

from __future__ import annotations

from artist_images.interfaces.image_cache_store import IImageCacheStore
from artist_images.models.image_record import CachedImageRecord, normalize_artist_key
from artist_images.utils.logging import get_logger


class MemoryImageCacheStore(IImageCacheStore):
    """Process-local cache store keyed by normalized artist name."""

    def __init__(self) -> None:
        self._records: dict[str, CachedImageRecord] = {}
        self._logger = get_logger(__name__)

    async def initialize(self) -> None:
        self._logger.info("image_cache_memory_initialized")

    async def lookup(self, artist_name: str) -> CachedImageRecord | None:
        return self._records.get(normalize_artist_key(artist_name))

    async def upsert(self, record: CachedImageRecord) -> None:
        # Records are frozen, so storing the instance itself is safe.
        self._records[record.normalized_key] = record
        self._logger.debug("image_cache_upserted", key=record.normalized_key)

    async def count(self) -> int:
        return len(self._records)

    def get_provider_name(self) -> str:
        return "memory"
