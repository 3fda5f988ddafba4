"""Downloads a resolved image so it can be copied into the blob store."""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from artist_images.models.image_record import DEFAULT_CONTENT_TYPE
from artist_images.utils.errors import BlobStoreError
from artist_images.utils.logging import get_logger

_PROVIDER_NAME = "download"
_DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class DownloadedImage:
    """Raw image bytes plus the content type declared by the origin server."""

    data: bytes
    content_type: str


class ImageDownloader:
    """Fetch image bytes over HTTP with a bounded timeout.

    Any failure to obtain a non-empty 200 body is raised as
    :class:`BlobStoreError`; the resolver treats it like a failed upload.
    """

    def __init__(self, http_client: httpx.AsyncClient, timeout: float = _DEFAULT_TIMEOUT) -> None:
        self._http = http_client
        self._timeout = timeout
        self._logger = get_logger(__name__)

    async def download(self, url: str) -> DownloadedImage:
        # InvalidURL (bad port, bad host) is not an HTTPError subclass.
        try:
            response = await self._http.get(url, timeout=self._timeout, follow_redirects=True)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise BlobStoreError(
                message=f"failed to download image: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        if response.status_code != 200:
            raise BlobStoreError(
                message=f"failed to download image: status {response.status_code}",
                provider_name=_PROVIDER_NAME,
            )

        data = response.content
        if not data:
            raise BlobStoreError(
                message="failed to download image: empty body",
                provider_name=_PROVIDER_NAME,
            )

        content_type = response.headers.get("content-type") or DEFAULT_CONTENT_TYPE
        self._logger.debug("image_downloaded", url=url, size=len(data), content_type=content_type)
        return DownloadedImage(data=data, content_type=content_type)
