"""Discogs artist image source.

Implements IImageSource by scraping the Discogs website: the artist search
page is parsed for ``/artist/<id>`` links, the closest name match is picked
with rapidfuzz, and the image is read from the artist page's ``og:image``
meta tag.  Discogs' spacer and default-avatar images are rejected.
"""

from __future__ import annotations

import re
from urllib.parse import quote_plus

import httpx
from bs4 import BeautifulSoup
from rapidfuzz import fuzz

from artist_images.interfaces.image_source import IImageSource
from artist_images.utils.errors import SourceUnavailableError
from artist_images.utils.logging import get_logger

_BASE_URL = "https://www.discogs.com"
_PROVIDER_NAME = "discogs"
_DEFAULT_TIMEOUT = 10.0
_DEFAULT_USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64; rv:109.0) Gecko/20100101 Firefox/115.0"
_ARTIST_URL_RE = re.compile(r"/artist/(\d+)")
_MIN_MATCH_CONFIDENCE = 0.6
_PLACEHOLDER_MARKERS = ("spacer.gif", "default-artist")


class DiscogsImageSource(IImageSource):
    """Image source that scrapes Discogs search and artist pages."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        timeout: float = _DEFAULT_TIMEOUT,
        user_agent: str = _DEFAULT_USER_AGENT,
    ) -> None:
        self._http = http_client
        self._timeout = timeout
        self._headers = {"User-Agent": user_agent}
        self._logger = get_logger(__name__)

    # -- Private helpers -------------------------------------------------------

    async def _fetch_page(self, url: str) -> BeautifulSoup:
        try:
            response = await self._http.get(
                url,
                headers=self._headers,
                timeout=self._timeout,
                follow_redirects=True,
            )
        except httpx.HTTPError as exc:
            raise SourceUnavailableError(
                message=f"failed to fetch Discogs page: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        if response.status_code != 200:
            self._logger.warning("discogs_scrape_http_error", url=url, status=response.status_code)
            raise SourceUnavailableError(
                message=f"failed to fetch Discogs page: status {response.status_code}",
                provider_name=_PROVIDER_NAME,
            )
        return BeautifulSoup(response.text, "html.parser")

    @staticmethod
    def _compute_confidence(query: str, result_name: str) -> float:
        return fuzz.token_sort_ratio(query.strip().lower(), result_name.strip().lower()) / 100.0

    def _best_artist_link(self, soup: BeautifulSoup, artist_name: str) -> str | None:
        """Return the absolute URL of the search result closest to *artist_name*."""
        best_href: str | None = None
        best_score = 0.0
        seen: set[str] = set()

        for link in soup.find_all("a", href=_ARTIST_URL_RE):
            href = link.get("href", "")
            match = _ARTIST_URL_RE.search(href)
            name = link.get_text(strip=True)
            if not match or not name or match.group(1) in seen:
                continue
            seen.add(match.group(1))

            score = self._compute_confidence(artist_name, name)
            if score > best_score:
                best_score = score
                best_href = href

        if best_href is None or best_score < _MIN_MATCH_CONFIDENCE:
            return None
        return f"{_BASE_URL}{best_href}" if best_href.startswith("/") else best_href

    # -- IImageSource implementation -------------------------------------------

    async def resolve(self, artist_name: str) -> str:
        search_url = f"{_BASE_URL}/search/?q={quote_plus(artist_name)}&type=artist"
        self._logger.info("discogs_scrape_start", artist=artist_name, url=search_url)

        artist_url = self._best_artist_link(await self._fetch_page(search_url), artist_name)
        if artist_url is None:
            raise SourceUnavailableError(
                message="no matching artist found on Discogs",
                provider_name=_PROVIDER_NAME,
            )

        soup = await self._fetch_page(artist_url)
        meta = soup.select_one('meta[property="og:image"][content]')
        image_url = meta["content"] if meta is not None else ""

        if not image_url:
            raise SourceUnavailableError(
                message="no image found on Discogs artist page",
                provider_name=_PROVIDER_NAME,
            )
        if any(marker in image_url for marker in _PLACEHOLDER_MARKERS):
            raise SourceUnavailableError(
                message="only placeholder image available",
                provider_name=_PROVIDER_NAME,
            )

        self._logger.info("discogs_image_found", artist=artist_name, image_url=image_url)
        return image_url

    def get_provider_name(self) -> str:
        return _PROVIDER_NAME
