"""Unit tests for ImageResolver.

Collaborators are mocked except the cache store, which is the real
in-memory backend so that state written by one call is visible to the next.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import httpx
import pytest

from artist_images.models.image_record import CachedImageRecord
from artist_images.providers.cache.memory_image_cache_store import MemoryImageCacheStore
from artist_images.services.image_downloader import DownloadedImage, ImageDownloader
from artist_images.services.image_resolver import ImageResolver, ResolverContext
from artist_images.utils.errors import (
    BlobStoreError,
    CacheStoreError,
    InvalidInputError,
    SourceUnavailableError,
)

# Mirrors the values baked into the conftest fixtures.
FIXED_NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)  # noqa: UP017
FIXED_TS = int(FIXED_NOW.timestamp())
PUBLIC_BASE = "http://cdn.test/artist-images"
SOURCE_URL = "https://img/radiohead.jpg"


def _cached(fetched_at=FIXED_NOW, **overrides) -> CachedImageRecord:
    ts = int(fetched_at.timestamp())
    fields = {
        "artist_name": "Radiohead",
        "image_key": f"Radiohead_{ts}.jpg",
        "url": f"{PUBLIC_BASE}/Radiohead_{ts}.jpg",
        "source": "last.fm",
        "fetched_at": fetched_at,
    }
    fields.update(overrides)
    return CachedImageRecord(**fields)


# ======================================================================
# Input validation
# ======================================================================


class TestInputValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "   ", "\t\n"])
    async def test_blank_name_rejected_without_io(
        self,
        resolver: ImageResolver,
        memory_store: MemoryImageCacheStore,
        mock_image_source,
        mock_blob_store,
        name: str,
    ) -> None:
        with pytest.raises(InvalidInputError, match="artist name is required"):
            await resolver.resolve(name)

        mock_image_source.resolve.assert_not_awaited()
        mock_blob_store.put_object.assert_not_awaited()
        assert await memory_store.count() == 0


# ======================================================================
# Cache hit / miss / refresh
# ======================================================================


class TestResolveFlow:
    @pytest.mark.asyncio
    async def test_cold_miss_stores_durable_copy(
        self,
        resolver: ImageResolver,
        memory_store: MemoryImageCacheStore,
        mock_image_source,
        mock_blob_store,
        mock_downloader,
    ) -> None:
        record = await resolver.resolve("Radiohead")

        expected_key = f"Radiohead_{FIXED_TS}.jpg"
        assert record.image_key == expected_key
        assert record.url == f"{PUBLIC_BASE}/{expected_key}"
        assert record.source == "last.fm"
        assert record.fetched_at == FIXED_NOW
        mock_downloader.download.assert_awaited_once_with(SOURCE_URL)
        mock_blob_store.put_object.assert_awaited_once()
        assert await memory_store.lookup("radiohead") == record

    @pytest.mark.asyncio
    async def test_repeat_call_served_from_cache(
        self,
        resolver: ImageResolver,
        mock_image_source,
        mock_downloader,
    ) -> None:
        first = await resolver.resolve("Radiohead")
        second = await resolver.resolve("  radiohead ")

        assert second == first
        assert mock_image_source.resolve.await_count == 1
        assert mock_downloader.download.await_count == 1

    @pytest.mark.asyncio
    async def test_source_receives_trimmed_name(
        self, resolver: ImageResolver, mock_image_source
    ) -> None:
        await resolver.resolve("  Radiohead  ")
        mock_image_source.resolve.assert_awaited_once_with("Radiohead")

    @pytest.mark.asyncio
    async def test_fresh_record_returned_without_network(
        self,
        resolver: ImageResolver,
        memory_store: MemoryImageCacheStore,
        mock_image_source,
    ) -> None:
        cached = _cached(fetched_at=FIXED_NOW - timedelta(days=1))
        await memory_store.upsert(cached)

        assert await resolver.resolve("RADIOHEAD") == cached
        mock_image_source.resolve.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stale_record_refreshed_with_new_key(
        self,
        resolver: ImageResolver,
        memory_store: MemoryImageCacheStore,
        mock_image_source,
    ) -> None:
        stale = _cached(fetched_at=FIXED_NOW - timedelta(days=8))
        await memory_store.upsert(stale)

        record = await resolver.resolve("Radiohead")

        mock_image_source.resolve.assert_awaited_once()
        assert record.fetched_at == FIXED_NOW
        assert record.image_key != stale.image_key
        assert await memory_store.count() == 1
        assert await memory_store.lookup("radiohead") == record

    @pytest.mark.asyncio
    async def test_record_expires_as_clock_advances(
        self,
        resolver: ImageResolver,
        mock_image_source,
        clock,
    ) -> None:
        await resolver.resolve("Radiohead")
        clock.now = FIXED_NOW + timedelta(days=6)
        await resolver.resolve("Radiohead")
        assert mock_image_source.resolve.await_count == 1

        clock.now = FIXED_NOW + timedelta(days=7)
        refreshed = await resolver.resolve("Radiohead")
        assert mock_image_source.resolve.await_count == 2
        assert refreshed.fetched_at == clock.now

    @pytest.mark.asyncio
    async def test_custom_ttl_respected(
        self,
        resolver_context: ResolverContext,
        memory_store: MemoryImageCacheStore,
        mock_image_source,
    ) -> None:
        resolver_context.ttl = timedelta(hours=1)
        await memory_store.upsert(_cached(fetched_at=FIXED_NOW - timedelta(hours=2)))

        await ImageResolver(resolver_context).resolve("Radiohead")

        mock_image_source.resolve.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_png_content_type_sets_extension(
        self, resolver: ImageResolver, mock_downloader
    ) -> None:
        mock_downloader.download = AsyncMock(
            return_value=DownloadedImage(data=b"\x89PNG", content_type="image/png")
        )

        record = await resolver.resolve("Radiohead")

        assert record.image_key == f"Radiohead_{FIXED_TS}.png"


# ======================================================================
# Degraded storage
# ======================================================================


class TestDegradedStorage:
    @pytest.mark.asyncio
    async def test_upload_failure_caches_source_url(
        self,
        resolver: ImageResolver,
        memory_store: MemoryImageCacheStore,
        mock_blob_store,
    ) -> None:
        mock_blob_store.put_object.side_effect = BlobStoreError("bucket gone", provider_name="minio")

        record = await resolver.resolve("Radiohead")

        assert record.image_key == ""
        assert record.url == SOURCE_URL
        assert record.is_durable is False
        assert await memory_store.lookup("Radiohead") == record
        mock_blob_store.public_url.assert_not_called()

    @pytest.mark.asyncio
    async def test_download_failure_caches_source_url(
        self,
        resolver: ImageResolver,
        mock_downloader,
        mock_blob_store,
    ) -> None:
        mock_downloader.download.side_effect = BlobStoreError("timeout", provider_name="download")

        record = await resolver.resolve("Radiohead")

        assert record.url == SOURCE_URL
        assert record.image_key == ""
        mock_blob_store.put_object.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_malformed_source_url_caches_source_url(
        self,
        resolver: ImageResolver,
        resolver_context: ResolverContext,
        mock_image_source,
        mock_blob_store,
    ) -> None:
        bad_url = "http://img.example:notaport/radiohead.jpg"
        mock_image_source.resolve.return_value = bad_url

        async with httpx.AsyncClient() as client:
            resolver_context.downloader = ImageDownloader(client, timeout=1.0)
            record = await resolver.resolve("Radiohead")

        assert record.image_key == ""
        assert record.url == bad_url
        mock_blob_store.put_object.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unexpected_upload_error_caches_source_url(
        self,
        resolver: ImageResolver,
        memory_store: MemoryImageCacheStore,
        mock_blob_store,
    ) -> None:
        mock_blob_store.put_object.side_effect = ValueError("Invalid endpoint: http://")

        record = await resolver.resolve("Radiohead")

        assert record.image_key == ""
        assert record.url == SOURCE_URL
        assert await memory_store.lookup("Radiohead") == record

    @pytest.mark.asyncio
    async def test_unexpected_download_error_caches_source_url(
        self,
        resolver: ImageResolver,
        mock_downloader,
    ) -> None:
        mock_downloader.download.side_effect = RuntimeError("connection pool closed")

        record = await resolver.resolve("Radiohead")

        assert record.url == SOURCE_URL
        assert record.is_durable is False

    @pytest.mark.asyncio
    async def test_degraded_record_served_while_fresh(
        self,
        resolver: ImageResolver,
        mock_blob_store,
        mock_image_source,
    ) -> None:
        mock_blob_store.put_object.side_effect = BlobStoreError("down", provider_name="minio")
        await resolver.resolve("Radiohead")

        again = await resolver.resolve("Radiohead")

        assert again.url == SOURCE_URL
        assert mock_image_source.resolve.await_count == 1


# ======================================================================
# Source failures
# ======================================================================


class TestSourceFailures:
    @pytest.mark.asyncio
    async def test_failure_on_cold_miss_raises_and_stores_nothing(
        self,
        resolver: ImageResolver,
        memory_store: MemoryImageCacheStore,
        mock_image_source,
        mock_blob_store,
    ) -> None:
        mock_image_source.resolve.side_effect = SourceUnavailableError(
            "only placeholder image available", provider_name="last.fm"
        )

        with pytest.raises(SourceUnavailableError, match="placeholder"):
            await resolver.resolve("Unknown Band")

        assert await memory_store.count() == 0
        mock_blob_store.put_object.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_leaves_stale_record_untouched(
        self,
        resolver: ImageResolver,
        memory_store: MemoryImageCacheStore,
        mock_image_source,
    ) -> None:
        stale = _cached(fetched_at=FIXED_NOW - timedelta(days=8))
        await memory_store.upsert(stale)
        mock_image_source.resolve.side_effect = SourceUnavailableError(
            "status 503", provider_name="last.fm"
        )

        with pytest.raises(SourceUnavailableError):
            await resolver.resolve("Radiohead")

        assert await memory_store.lookup("Radiohead") == stale

    @pytest.mark.asyncio
    async def test_serve_stale_on_error_returns_stale_record(
        self,
        resolver_context: ResolverContext,
        memory_store: MemoryImageCacheStore,
        mock_image_source,
    ) -> None:
        resolver_context.serve_stale_on_error = True
        stale = _cached(fetched_at=FIXED_NOW - timedelta(days=8))
        await memory_store.upsert(stale)
        mock_image_source.resolve.side_effect = SourceUnavailableError(
            "status 503", provider_name="last.fm"
        )

        record = await ImageResolver(resolver_context).resolve("Radiohead")

        assert record == stale

    @pytest.mark.asyncio
    async def test_serve_stale_without_record_still_raises(
        self,
        resolver_context: ResolverContext,
        mock_image_source,
    ) -> None:
        resolver_context.serve_stale_on_error = True
        mock_image_source.resolve.side_effect = SourceUnavailableError(
            "status 503", provider_name="last.fm"
        )

        with pytest.raises(SourceUnavailableError):
            await ImageResolver(resolver_context).resolve("Radiohead")

    @pytest.mark.asyncio
    async def test_unexpected_exception_wrapped(
        self, resolver: ImageResolver, mock_image_source
    ) -> None:
        boom = RuntimeError("parser exploded")
        mock_image_source.resolve.side_effect = boom

        with pytest.raises(SourceUnavailableError) as exc_info:
            await resolver.resolve("Radiohead")

        assert exc_info.value.__cause__ is boom
        assert exc_info.value.provider_name == "last.fm"


# ======================================================================
# Cache store failures
# ======================================================================


class TestCacheStoreFailures:
    @pytest.mark.asyncio
    async def test_lookup_failure_treated_as_miss(
        self,
        resolver_context: ResolverContext,
        mock_image_source,
    ) -> None:
        broken = MemoryImageCacheStore()
        broken.lookup = AsyncMock(side_effect=CacheStoreError("locked", provider_name="sqlite"))
        resolver_context.cache_store = broken

        record = await ImageResolver(resolver_context).resolve("Radiohead")

        assert record.url == f"{PUBLIC_BASE}/Radiohead_{FIXED_TS}.jpg"
        mock_image_source.resolve.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_upsert_failure_still_returns_record(
        self,
        resolver_context: ResolverContext,
    ) -> None:
        broken = MemoryImageCacheStore()
        broken.upsert = AsyncMock(side_effect=CacheStoreError("disk full", provider_name="sqlite"))
        resolver_context.cache_store = broken

        record = await ImageResolver(resolver_context).resolve("Radiohead")

        assert record.image_key == f"Radiohead_{FIXED_TS}.jpg"
        assert await broken.count() == 0


# ======================================================================
# Concurrency
# ======================================================================


async def _slow_source(name: str) -> str:
    await asyncio.sleep(0.01)
    return SOURCE_URL


class TestConcurrentRequests:
    @pytest.mark.asyncio
    async def test_concurrent_requests_share_one_refresh(
        self,
        resolver: ImageResolver,
        memory_store: MemoryImageCacheStore,
        mock_image_source,
    ) -> None:
        mock_image_source.resolve.side_effect = _slow_source

        records = await asyncio.gather(
            resolver.resolve("Radiohead"),
            resolver.resolve("radiohead"),
            resolver.resolve(" RADIOHEAD "),
        )

        assert mock_image_source.resolve.await_count == 1
        assert records[0] == records[1] == records[2]
        assert await memory_store.count() == 1

    @pytest.mark.asyncio
    async def test_shared_failure_reaches_every_caller(
        self,
        resolver: ImageResolver,
        mock_image_source,
    ) -> None:
        async def failing(name: str) -> str:
            await asyncio.sleep(0.01)
            raise SourceUnavailableError("status 503", provider_name="last.fm")

        mock_image_source.resolve.side_effect = failing

        results = await asyncio.gather(
            resolver.resolve("Radiohead"),
            resolver.resolve("Radiohead"),
            return_exceptions=True,
        )

        assert all(isinstance(r, SourceUnavailableError) for r in results)
        assert mock_image_source.resolve.await_count == 1

    @pytest.mark.asyncio
    async def test_next_request_after_shared_refresh_starts_fresh(
        self,
        resolver: ImageResolver,
        mock_image_source,
    ) -> None:
        mock_image_source.resolve.side_effect = SourceUnavailableError(
            "status 503", provider_name="last.fm"
        )
        with pytest.raises(SourceUnavailableError):
            await resolver.resolve("Radiohead")

        mock_image_source.resolve.side_effect = None
        mock_image_source.resolve.return_value = SOURCE_URL
        record = await resolver.resolve("Radiohead")

        assert record.image_key == f"Radiohead_{FIXED_TS}.jpg"
        assert mock_image_source.resolve.await_count == 2

    @pytest.mark.asyncio
    async def test_without_coalescing_each_request_refreshes(
        self,
        resolver_context: ResolverContext,
        memory_store: MemoryImageCacheStore,
        mock_image_source,
    ) -> None:
        resolver_context.coalesce_requests = False
        mock_image_source.resolve.side_effect = _slow_source

        await asyncio.gather(
            *(ImageResolver(resolver_context).resolve("Radiohead") for _ in range(3))
        )

        assert mock_image_source.resolve.await_count == 3
        assert await memory_store.count() == 1

    @pytest.mark.asyncio
    async def test_different_artists_resolved_independently(
        self,
        resolver: ImageResolver,
        memory_store: MemoryImageCacheStore,
        mock_image_source,
    ) -> None:
        mock_image_source.resolve.side_effect = _slow_source

        await asyncio.gather(resolver.resolve("Radiohead"), resolver.resolve("Bjork"))

        assert mock_image_source.resolve.await_count == 2
        assert await memory_store.count() == 2


def test_context_exposed(resolver: ImageResolver, resolver_context: ResolverContext) -> None:
    assert resolver.context is resolver_context
