"""Abstract base class for the artist image cache store.

Defines the contract for durable storage of :class:`CachedImageRecord`
rows keyed by normalized artist name.  Implementations may use SQLite, an
in-memory dict, or any other backend; the resolver only depends on this
interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from artist_images.models.image_record import CachedImageRecord


class IImageCacheStore(ABC):
    """Contract for the cache of resolved artist images.

    All operations are async so that a network-backed store never blocks
    the event loop.  Implementations must tolerate concurrent calls from
    many requests without external locking.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the backing store (create tables, open files).

        Raises
        ------
        artist_images.utils.errors.CacheStoreError
            If the store is unreachable.  Fatal at application startup.
        """

    @abstractmethod
    async def lookup(self, artist_name: str) -> CachedImageRecord | None:
        """Return the record for *artist_name*, or ``None`` on a miss.

        The name is normalized before the lookup.  No freshness policy is
        applied here; stale records are returned as-is.

        Raises
        ------
        artist_images.utils.errors.CacheStoreError
            On infrastructure failure only -- never for a miss.
        """

    @abstractmethod
    async def upsert(self, record: CachedImageRecord) -> None:
        """Insert *record* or atomically replace the row sharing its key.

        Raises
        ------
        artist_images.utils.errors.CacheStoreError
            If the write fails.
        """

    @abstractmethod
    async def count(self) -> int:
        """Return the number of distinct normalized artist names stored."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier for the backend (e.g. ``"sqlite"``)."""
