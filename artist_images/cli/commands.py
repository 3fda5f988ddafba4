"""Command-line access to the resolver, outside the web server.

Usage::

    python -m artist_images.cli resolve "Radiohead"
    python -m artist_images.cli resolve "Radiohead" --json
    python -m artist_images.cli stats

Components are built from the same settings and ``config/config.yaml`` as
the web application.  Logs go to stderr so stdout only carries the result.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from artist_images.api.schemas import ArtistImageResponse
from artist_images.config.settings import Settings
from artist_images.main import _build_all
from artist_images.utils.errors import ArtistImageError, InvalidInputError, SourceUnavailableError
from artist_images.utils.logging import configure_logging

# Exit codes
_EXIT_OK = 0
_EXIT_INVALID = 2
_EXIT_NOT_FOUND = 3
_EXIT_ERROR = 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="artist_images",
        description="Resolve artist images and inspect the image cache.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    resolve = sub.add_parser("resolve", help="Resolve an artist name to an image URL")
    resolve.add_argument("name", help="Artist name")
    resolve.add_argument("--json", action="store_true", help="Print the API JSON body")

    sub.add_parser("stats", help="Show how many artists are cached")
    return parser


async def _resolve(app_settings: Settings, name: str) -> ArtistImageResponse:
    components = _build_all(app_settings)
    try:
        await components["cache_store"].initialize()
        record = await components["resolver"].resolve(name)
    finally:
        await components["http_client"].aclose()
    return ArtistImageResponse.from_record(record)


async def _stats(app_settings: Settings) -> dict[str, Any]:
    components = _build_all(app_settings)
    try:
        await components["cache_store"].initialize()
        count = await components["cache_store"].count()
    finally:
        await components["http_client"].aclose()
    return {
        "cached_artists": count,
        "bucket": components["blob_store"].bucket,
        "storage": components["blob_store"].get_provider_name(),
        "database": components["cache_store"].get_provider_name(),
    }


def _print_record(body: ArtistImageResponse, as_json: bool) -> None:
    if as_json:
        print(json.dumps(body.model_dump(mode="json", exclude_none=True), indent=2))
        return
    print(f"Artist:    {body.artist_name}")
    print(f"Image URL: {body.image_url}")
    print(f"Source:    {body.source}")
    print(f"Cached at: {body.cached_at.isoformat() if body.cached_at else '-'}")


def main(argv: list[str] | None = None, app_settings: Settings | None = None) -> int:
    """Run the CLI and return the process exit code."""
    args = _build_parser().parse_args(argv)
    app_settings = app_settings or Settings()
    configure_logging(log_level="WARNING", stream=sys.stderr)

    try:
        if args.command == "resolve":
            body = asyncio.run(_resolve(app_settings, args.name))
            _print_record(body, args.json)
        else:
            print(json.dumps(asyncio.run(_stats(app_settings)), indent=2))
    except InvalidInputError as exc:
        print(f"error: {exc.message}", file=sys.stderr)
        return _EXIT_INVALID
    except SourceUnavailableError as exc:
        print(f"error: failed to scrape image: {exc}", file=sys.stderr)
        return _EXIT_NOT_FOUND
    except ArtistImageError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return _EXIT_ERROR

    return _EXIT_OK
