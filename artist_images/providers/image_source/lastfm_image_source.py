"""Last.fm artist image source.

Implements IImageSource by scraping the public Last.fm artist page.  The
page is requested with browser-like headers; the image is taken from the
header background image, then the artist avatar, then the ``og:image``
meta tag.  Last.fm serves a generic star placeholder for artists without a
photo; those URLs are rejected so the placeholder never gets cached.
"""

from __future__ import annotations

from urllib.parse import quote_plus

import httpx
from bs4 import BeautifulSoup

from artist_images.interfaces.image_source import IImageSource
from artist_images.utils.errors import SourceUnavailableError
from artist_images.utils.logging import get_logger

_BASE_URL = "https://www.last.fm/music"
_PROVIDER_NAME = "last.fm"
_DEFAULT_TIMEOUT = 10.0
_DEFAULT_USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64; rv:109.0) Gecko/20100101 Firefox/115.0"

# Image hashes Last.fm uses for its "no artist photo" placeholders.
_PLACEHOLDER_HASHES = frozenset({
    "2a96cbd8b46e442fc41c2b86b821562f",
    "c6f59c1e5e7240a4c0d427abd71f3dbb",
})


class LastFmImageSource(IImageSource):
    """Image source that scrapes ``last.fm/music/<artist>`` pages.

    The ``httpx.AsyncClient`` is injected via the constructor for
    testability and shared with the rest of the application.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        timeout: float = _DEFAULT_TIMEOUT,
        user_agent: str = _DEFAULT_USER_AGENT,
    ) -> None:
        self._http = http_client
        self._timeout = timeout
        self._headers = {
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
            "Referer": "https://www.google.com/",
            "Upgrade-Insecure-Requests": "1",
        }
        self._logger = get_logger(__name__)

    # -- Private helpers -------------------------------------------------------

    @staticmethod
    def _artist_url(artist_name: str) -> str:
        return f"{_BASE_URL}/{quote_plus(artist_name)}"

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
                message=f"failed to fetch Last.fm page: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        if response.status_code != 200:
            raise SourceUnavailableError(
                message=f"failed to fetch Last.fm page: status {response.status_code}",
                provider_name=_PROVIDER_NAME,
            )
        return BeautifulSoup(response.text, "html.parser")

    @staticmethod
    def _extract_image_url(soup: BeautifulSoup) -> str | None:
        """Apply the selectors in priority order and return the first hit."""
        header = soup.select_one("img.header-new-background-image[src]")
        if header is not None and header["src"]:
            return header["src"]

        # Several avatars can appear on the page; the last one is the artist's.
        avatars = [img["src"] for img in soup.select("img.avatar[src]") if img["src"]]
        if avatars:
            return avatars[-1]

        metas = [
            meta["content"]
            for meta in soup.select('meta[property="og:image"][content]')
            if meta["content"]
        ]
        if metas:
            return metas[-1]
        return None

    @staticmethod
    def _is_placeholder(image_url: str) -> bool:
        return any(marker in image_url for marker in _PLACEHOLDER_HASHES)

    # -- IImageSource implementation -------------------------------------------

    async def resolve(self, artist_name: str) -> str:
        url = self._artist_url(artist_name)
        self._logger.info("lastfm_scrape_start", artist=artist_name, url=url)

        soup = await self._fetch_page(url)
        image_url = self._extract_image_url(soup)

        if not image_url:
            raise SourceUnavailableError(
                message="no image found on Last.fm page",
                provider_name=_PROVIDER_NAME,
            )
        if self._is_placeholder(image_url):
            raise SourceUnavailableError(
                message="only placeholder image available",
                provider_name=_PROVIDER_NAME,
            )

        self._logger.info("lastfm_image_found", artist=artist_name, image_url=image_url)
        return image_url

    def get_provider_name(self) -> str:
        return _PROVIDER_NAME
