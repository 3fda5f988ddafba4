"""Fetch-or-cache orchestration for artist images.

The :class:`ImageResolver` answers "give me a usable image URL for this
artist".  It trusts a fresh cache record, otherwise asks the configured
image source for a URL, copies the image into the blob store, and writes
the new record back to the cache.

Failure policy:

- A blank name is rejected with ``InvalidInputError`` before any I/O.
- A cache read failure is logged and treated as a miss.
- An image source failure is the only thing that fails a request
  (``SourceUnavailableError``); the cache is left untouched.  With
  ``serve_stale_on_error`` the stale record is returned instead.
- Any download/upload failure degrades to caching the raw source URL with
  an empty ``image_key``.
- A cache write failure is logged; the fresh record is still returned.

With ``coalesce_requests`` enabled, concurrent requests for the same
normalized name share a single in-flight refresh.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog

from artist_images.interfaces.blob_store import IBlobStore
from artist_images.interfaces.image_cache_store import IImageCacheStore
from artist_images.interfaces.image_source import IImageSource
from artist_images.models.image_record import (
    CachedImageRecord,
    build_object_key,
    normalize_artist_key,
    utc_now,
)
from artist_images.services.image_downloader import ImageDownloader
from artist_images.utils.errors import (
    BlobStoreError,
    CacheStoreError,
    InvalidInputError,
    SourceUnavailableError,
)
from artist_images.utils.logging import get_logger

DEFAULT_TTL = timedelta(days=7)


@dataclass
class ResolverContext:
    """Everything the resolver needs, constructed once per process.

    Attributes
    ----------
    cache_store:
        Durable record store keyed by normalized artist name.
    image_source:
        The single configured image source.
    blob_store:
        Object storage receiving durable copies of images.
    downloader:
        Fetches the bytes behind a source URL.
    ttl:
        Age at which a record stops being served without a refresh.
    serve_stale_on_error:
        Return the stale record when a refresh fails instead of raising.
    coalesce_requests:
        Share one in-flight refresh between concurrent callers per key.
    clock:
        Returns the current UTC time; injectable for tests.
    """

    cache_store: IImageCacheStore
    image_source: IImageSource
    blob_store: IBlobStore
    downloader: ImageDownloader
    ttl: timedelta = DEFAULT_TTL
    serve_stale_on_error: bool = False
    coalesce_requests: bool = True
    clock: Callable[[], datetime] = utc_now


class ImageResolver:
    """Resolve artist names to cached image records."""

    def __init__(self, context: ResolverContext) -> None:
        self._ctx = context
        self._in_flight: dict[str, asyncio.Future[CachedImageRecord]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def context(self) -> ResolverContext:
        return self._ctx

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def resolve(self, artist_name: str) -> CachedImageRecord:
        """Return a usable image record for *artist_name*.

        Raises
        ------
        InvalidInputError
            If the name is empty after trimming.
        SourceUnavailableError
            If the record is missing or stale and the image source fails.
        """
        name = (artist_name or "").strip()
        if not name:
            raise InvalidInputError()

        # A failed lookup comes back as None and is treated as a miss.
        cached = await self._lookup(name)
        if cached is not None and cached.is_fresh(self._ctx.ttl, self._ctx.clock()):
            self._logger.info("image_cache_hit", artist=name, source=cached.source)
            return cached

        self._logger.info("image_cache_refresh", artist=name, stale=cached is not None)

        if not self._ctx.coalesce_requests:
            return await self._refresh(name, cached)

        # Keyed by normalized name so "Radiohead" and "RADIOHEAD" share a refresh.
        key = normalize_artist_key(name)
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._refresh(name, cached))
            self._in_flight[key] = task
            task.add_done_callback(lambda done, k=key: self._forget(k, done))
        else:
            self._logger.debug("image_refresh_joined", artist=name)

        # shield: one caller disconnecting must not cancel the shared refresh.
        return await asyncio.shield(task)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _forget(self, key: str, task: asyncio.Future[CachedImageRecord]) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if not task.cancelled():
            # Mark the exception retrieved; every waiter re-raises it anyway.
            task.exception()

    async def _lookup(self, name: str) -> CachedImageRecord | None:
        try:
            return await self._ctx.cache_store.lookup(name)
        except CacheStoreError as exc:
            self._logger.warning("image_cache_lookup_failed", artist=name, error=str(exc))
            return None

    async def _refresh(
        self, name: str, stale: CachedImageRecord | None
    ) -> CachedImageRecord:
        source = self._ctx.image_source
        try:
            source_url = await source.resolve(name)
        except SourceUnavailableError as exc:
            return self._fallback(name, stale, exc)
        except Exception as exc:  # noqa: BLE001
            # Provider bugs still fail only this request, as a source error.
            wrapped = SourceUnavailableError(
                message=f"failed to resolve image: {exc}",
                provider_name=source.get_provider_name(),
            )
            wrapped.__cause__ = exc
            return self._fallback(name, stale, wrapped)

        # One timestamp for both the object key and the record.
        fetched_at = self._ctx.clock()
        image_key = await self._store_durably(name, source_url, fetched_at)
        url = self._ctx.blob_store.public_url(image_key) if image_key else source_url

        record = CachedImageRecord(
            artist_name=name,
            image_key=image_key,
            url=url,
            source=source.get_provider_name(),
            fetched_at=fetched_at,
        )
        # Returned even if this write fails.
        await self._persist(record)

        self._logger.info(
            "image_resolved",
            artist=name,
            source=record.source,
            durable=record.is_durable,
        )
        return record

    def _fallback(
        self,
        name: str,
        stale: CachedImageRecord | None,
        error: SourceUnavailableError,
    ) -> CachedImageRecord:
        if self._ctx.serve_stale_on_error and stale is not None:
            self._logger.warning(
                "image_source_failed_serving_stale",
                artist=name,
                error=str(error),
                fetched_at=stale.fetched_at.isoformat(),
            )
            return stale

        self._logger.warning("image_source_failed", artist=name, error=str(error))
        raise error

    async def _store_durably(self, name: str, source_url: str, fetched_at: datetime) -> str:
        """Copy the image into the blob store; return its key or ``""``."""
        try:
            image = await self._ctx.downloader.download(source_url)
            key = build_object_key(name, fetched_at, image.content_type)
            return await self._ctx.blob_store.put_object(key, image.data, image.content_type)
        except BlobStoreError as exc:
            self._logger.warning(
                "blob_upload_failed_degrading",
                artist=name,
                source_url=source_url,
                error=str(exc),
            )
        except Exception as exc:  # noqa: BLE001
            # Anything else from a store adapter is still only a lost copy;
            # the source URL keeps the request servable.
            self._logger.warning(
                "blob_upload_failed_degrading",
                artist=name,
                source_url=source_url,
                error=str(exc),
                error_type=type(exc).__name__,
            )
        # Degraded: the record points at the source URL until the next refresh.
        return ""

    async def _persist(self, record: CachedImageRecord) -> None:
        try:
            await self._ctx.cache_store.upsert(record)
        except CacheStoreError as exc:
            self._logger.warning(
                "cache_upsert_failed",
                artist=record.artist_name,
                error=str(exc),
            )
