"""Artist image service FastAPI application entry point.

Wires the cache store, image source, blob store and resolver together,
configures structured logging, and exposes the HTTP routes.  The cache
store and the blob store are checked during startup; if either is
unreachable the lifespan raises and the process does not start serving.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from artist_images.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from artist_images.api.routes import router as api_router
from artist_images.config.loader import load_config
from artist_images.config.settings import Settings
from artist_images.interfaces.image_cache_store import IImageCacheStore
from artist_images.interfaces.image_source import IImageSource
from artist_images.providers.blob_store.s3_blob_store import S3BlobStore
from artist_images.providers.cache.memory_image_cache_store import MemoryImageCacheStore
from artist_images.providers.cache.sqlite_image_cache_store import SQLiteImageCacheStore
from artist_images.providers.image_source.discogs_image_source import DiscogsImageSource
from artist_images.providers.image_source.lastfm_image_source import LastFmImageSource
from artist_images.services.image_downloader import ImageDownloader
from artist_images.services.image_resolver import ImageResolver, ResolverContext
from artist_images.utils.errors import ConfigurationError
from artist_images.utils.logging import configure_logging, get_logger

_VERSION = "0.1.0"

_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Component factories
# ---------------------------------------------------------------------------

_IMAGE_SOURCES: dict[str, type[IImageSource]] = {
    "lastfm": LastFmImageSource,
    "discogs": DiscogsImageSource,
}


def _build_cache_store(cache_config: dict[str, Any]) -> IImageCacheStore:
    """Select the cache backend named by ``cache.backend``."""
    backend = str(cache_config.get("backend", "sqlite"))
    if backend.lower() == "sqlite":
        return SQLiteImageCacheStore(db_path=cache_config.get("db_path", "data/artist_images.db"))
    if backend.lower() == "memory":
        return MemoryImageCacheStore()
    raise ConfigurationError(f"unknown cache backend: {backend!r}")


def _image_source_class(name: str) -> type[IImageSource]:
    """Map ``image_source`` to a provider class; "last.fm" and "last_fm" mean lastfm."""
    source_cls = _IMAGE_SOURCES.get(name.lower().replace(".", "").replace("_", ""))
    if source_cls is None:
        raise ConfigurationError(f"unknown image source: {name!r}")
    return source_cls


def _build_image_source(
    name: str,
    http_client: httpx.AsyncClient,
    http_config: dict[str, Any],
) -> IImageSource:
    """Construct the image source named by ``image_source``."""
    source_cls = _image_source_class(name)
    kwargs = {
        "http_client": http_client,
        "timeout": float(http_config.get("timeout", 10.0)),
    }
    if http_config.get("user_agent"):
        kwargs["user_agent"] = http_config["user_agent"]
    return source_cls(**kwargs)


def _build_blob_store(
    blob_config: dict[str, Any], app_settings: Settings, timeout: float
) -> S3BlobStore:
    # Credentials stay in Settings; they never enter the config dict.
    return S3BlobStore(
        endpoint=blob_config["endpoint"],
        bucket=blob_config["bucket"],
        access_key=app_settings.minio_access_key,
        secret_key=app_settings.minio_secret_key,
        public_endpoint=blob_config.get("public_endpoint", ""),
        use_ssl=bool(blob_config.get("use_ssl", False)),
        timeout=timeout,
    )


def _build_all(
    app_settings: Settings, overrides: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Construct every component of the service.

    *overrides* are deep-merged over the loaded configuration.  Returns a
    flat dict of named components to be stored on ``app.state``.
    """
    config = load_config(settings=app_settings, overrides=overrides)
    http_config = config.get("http", {})
    resolver_config = config.get("resolver", {})
    timeout = float(http_config.get("timeout", 10.0))

    # Everything that can reject the configuration runs before the HTTP
    # client exists, so a bad setting leaves nothing to close.
    source_name = str(config["image_source"])
    _image_source_class(source_name)
    cache_store = _build_cache_store(config.get("cache", {}))
    blob_store = _build_blob_store(config["blob_store"], app_settings, timeout)

    http_client = httpx.AsyncClient(timeout=timeout)
    image_source = _build_image_source(source_name, http_client, http_config)
    downloader = ImageDownloader(http_client=http_client, timeout=timeout)

    resolver = ImageResolver(
        ResolverContext(
            cache_store=cache_store,
            image_source=image_source,
            blob_store=blob_store,
            downloader=downloader,
            ttl=timedelta(days=float(resolver_config.get("ttl_days", 7))),
            serve_stale_on_error=bool(resolver_config.get("serve_stale_on_error", False)),
            coalesce_requests=bool(resolver_config.get("coalesce_requests", True)),
        )
    )

    return {
        "settings": app_settings,
        "config": config,
        "http_client": http_client,
        "cache_store": cache_store,
        "image_source": image_source,
        "blob_store": blob_store,
        "resolver": resolver,
    }


async def _start_components(components: dict[str, Any]) -> None:
    """Initialize the stores; any failure here aborts startup."""
    await components["cache_store"].initialize()
    await components["blob_store"].ensure_bucket()


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Build and check all components on startup, clean up on shutdown."""
    app_settings: Settings = application.state.settings
    components = _build_all(app_settings)
    config: dict[str, Any] = components["config"]
    http_client: httpx.AsyncClient = components["http_client"]

    try:
        await _start_components(components)
    except Exception:
        await http_client.aclose()
        _logger.error("app_startup_failed")
        raise

    for key, value in components.items():
        setattr(application.state, key, value)

    _logger.info(
        "app_startup",
        version=_VERSION,
        environment=config["app"]["env"],
        database=components["cache_store"].get_provider_name(),
        image_source=components["image_source"].get_provider_name(),
        endpoint=config["blob_store"]["endpoint"],
        bucket=config["blob_store"]["bucket"],
    )

    yield

    await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build and configure the FastAPI application."""
    app_settings = app_settings or Settings()
    config = load_config(settings=app_settings)
    configure_logging(
        log_level=config["logging"]["level"],
        json_output=(config["app"]["env"] == "production"),
    )

    application = FastAPI(
        title="Artist Image Service",
        version=_VERSION,
        description=(
            "Resolve an artist name to a stable, publicly servable image URL, "
            "cached in SQLite and mirrored to S3-compatible object storage."
        ),
        lifespan=_lifespan,
    )
    application.state.settings = app_settings
    application.state.config = config

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    application.include_router(api_router)
    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def run() -> None:
    """Serve the application with uvicorn on the configured host and port."""
    app_config: dict[str, Any] = app.state.config["app"]
    uvicorn.run(
        "artist_images.main:app",
        host=app_config["host"],
        port=int(app_config["port"]),
        reload=(app_config["env"] == "development"),
    )


if __name__ == "__main__":
    run()
