"""Shared pytest fixtures for the artist image service test suite."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from artist_images.config.loader import load_config
from artist_images.config.settings import Settings
from artist_images.interfaces.blob_store import IBlobStore
from artist_images.interfaces.image_source import IImageSource
from artist_images.providers.cache.memory_image_cache_store import MemoryImageCacheStore
from artist_images.services.image_downloader import DownloadedImage, ImageDownloader
from artist_images.services.image_resolver import ImageResolver, ResolverContext

# 2026-01-01T00:00:00Z
FIXED_NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)  # noqa: UP017
FIXED_TS = int(FIXED_NOW.timestamp())
PUBLIC_BASE = "http://cdn.test/artist-images"
SOURCE_URL = "https://img/radiohead.jpg"


class FakeClock:
    """Callable clock whose time only moves when a test says so."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


# ---------------------------------------------------------------------------
# Mock collaborator fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mock_image_source() -> IImageSource:
    """Mock IImageSource that always finds the Radiohead image.

    Override with ``mock_image_source.resolve.side_effect = ...`` for
    failure scenarios.
    """
    mock = MagicMock(spec=IImageSource)
    mock.get_provider_name.return_value = "last.fm"
    mock.resolve = AsyncMock(return_value=SOURCE_URL)
    return mock


@pytest.fixture
def mock_blob_store() -> IBlobStore:
    """Mock IBlobStore that accepts every upload."""
    mock = MagicMock(spec=IBlobStore)
    mock.bucket = "artist-images"
    mock.get_provider_name.return_value = "minio"
    mock.ensure_bucket = AsyncMock(return_value=None)
    mock.put_object = AsyncMock(side_effect=lambda key, data, content_type: key)
    mock.public_url.side_effect = lambda key: f"{PUBLIC_BASE}/{key}"
    return mock


@pytest.fixture
def mock_downloader() -> ImageDownloader:
    mock = MagicMock(spec=ImageDownloader)
    mock.download = AsyncMock(
        return_value=DownloadedImage(data=b"\xff\xd8\xff\xe0jpeg", content_type="image/jpeg")
    )
    return mock


@pytest.fixture
def memory_store() -> MemoryImageCacheStore:
    return MemoryImageCacheStore()


@pytest.fixture
def resolver_context(
    memory_store: MemoryImageCacheStore,
    mock_image_source: IImageSource,
    mock_blob_store: IBlobStore,
    mock_downloader: ImageDownloader,
    clock: FakeClock,
) -> ResolverContext:
    return ResolverContext(
        cache_store=memory_store,
        image_source=mock_image_source,
        blob_store=mock_blob_store,
        downloader=mock_downloader,
        clock=clock,
    )


@pytest.fixture
def resolver(resolver_context: ResolverContext) -> ImageResolver:
    return ImageResolver(resolver_context)


def make_settings(**overrides) -> Settings:
    """Build a Settings instance that ignores any local .env file."""
    defaults = {
        "db_path": "data/test.db",
        "cache_backend": "memory",
        "minio_endpoint": "minio:9000",
        "minio_bucket": "artist-images",
        "image_source": "lastfm",
        "app_env": "test",
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


@pytest.fixture
def components(
    resolver: ImageResolver,
    resolver_context: ResolverContext,
) -> dict:
    """Component dict shaped like ``main._build_all``'s, built from mocks."""
    http_client = MagicMock()
    http_client.aclose = AsyncMock(return_value=None)
    settings = make_settings()
    return {
        "settings": settings,
        "config": load_config(settings=settings),
        "http_client": http_client,
        "cache_store": resolver_context.cache_store,
        "image_source": resolver_context.image_source,
        "blob_store": resolver_context.blob_store,
        "resolver": resolver,
    }
