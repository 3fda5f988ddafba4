"""FastAPI routes for the artist image service.

    Endpoint                    Method  Description
    ---------------------------------------------------------------------
    /api/artist-image           GET     Resolve ?name= and return JSON
    /api/artist-image/serve     GET     Resolve ?name= and redirect to the image
    /api/stats                  GET     Cache size and storage backends
    /health                     GET     Liveness check

Service dependencies are resolved from ``app.state`` (populated at startup
in ``main.py``) through ``Depends`` with the ``Annotated`` pattern, so
tests can build an app with fakes on ``app.state``.
"""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse

from artist_images.api.schemas import ArtistImageResponse, StatsResponse
from artist_images.interfaces.blob_store import IBlobStore
from artist_images.interfaces.image_cache_store import IImageCacheStore
from artist_images.services.image_resolver import ImageResolver
from artist_images.utils.errors import CacheStoreError, InvalidInputError, SourceUnavailableError
from artist_images.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter()

_NAME_REQUIRED = "artist name is required"


# ---------------------------------------------------------------------------
# Dependency injection helpers: resolve singletons from app.state
# ---------------------------------------------------------------------------


def _get_resolver(request: Request) -> ImageResolver:
    return request.app.state.resolver


def _get_cache_store(request: Request) -> IImageCacheStore:
    return request.app.state.cache_store


def _get_blob_store(request: Request) -> IBlobStore:
    return request.app.state.blob_store


ResolverDep = Annotated[ImageResolver, Depends(_get_resolver)]
CacheStoreDep = Annotated[IImageCacheStore, Depends(_get_cache_store)]
BlobStoreDep = Annotated[IBlobStore, Depends(_get_blob_store)]
NameParam = Annotated[str, Query(description="Artist name to resolve")]


def _json(status_code: int, body: ArtistImageResponse) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
    )


# ---------------------------------------------------------------------------
# Artist image endpoints
# ---------------------------------------------------------------------------


@router.get("/api/artist-image", response_model=ArtistImageResponse)
async def get_artist_image(resolver: ResolverDep, name: NameParam = "") -> JSONResponse:
    """Resolve an artist image and describe it as JSON."""
    if not name:
        return _json(400, ArtistImageResponse(success=False, error=_NAME_REQUIRED))

    try:
        record = await resolver.resolve(name)
    except InvalidInputError as exc:
        return _json(400, ArtistImageResponse(success=False, error=exc.message))
    except SourceUnavailableError as exc:
        return _json(
            404,
            ArtistImageResponse(
                success=False,
                error=f"failed to scrape image: {exc}",
                artist_name=name,
            ),
        )

    return _json(200, ArtistImageResponse.from_record(record))


@router.get("/api/artist-image/serve", response_model=None)
async def serve_artist_image(
    resolver: ResolverDep, name: NameParam = ""
) -> RedirectResponse | PlainTextResponse:
    """Resolve an artist image and redirect to it."""
    if not name:
        return PlainTextResponse(_NAME_REQUIRED, status_code=400)

    try:
        record = await resolver.resolve(name)
    except InvalidInputError as exc:
        return PlainTextResponse(exc.message, status_code=400)
    except SourceUnavailableError as exc:
        return PlainTextResponse(f"failed to scrape image: {exc}", status_code=404)

    return RedirectResponse(record.url, status_code=302)


# ---------------------------------------------------------------------------
# Operational endpoints
# ---------------------------------------------------------------------------


@router.get("/api/stats", response_model=StatsResponse)
async def get_stats(cache_store: CacheStoreDep, blob_store: BlobStoreDep) -> StatsResponse:
    """Report how many artists are cached and which backends are in use."""
    try:
        count = await cache_store.count()
    except CacheStoreError as exc:
        _logger.error("cache_count_failed", error=str(exc))
        count = 0

    return StatsResponse(
        cached_artists=count,
        bucket=blob_store.bucket,
        storage=blob_store.get_provider_name(),
        database=cache_store.get_provider_name(),
    )


@router.get("/health", response_class=PlainTextResponse)
async def health() -> str:
    return "OK"
