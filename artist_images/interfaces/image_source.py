"""Abstract base class for artist image sources.

An image source maps an artist name to a direct URL of an artist image,
typically by scraping a music site.  Each implementation owns its parsing
details and failure modes, but all of them report failure the same way:
by raising :class:`SourceUnavailableError`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class IImageSource(ABC):
    """Contract for services that find an image URL for an artist."""

    @abstractmethod
    async def resolve(self, artist_name: str) -> str:
        """Return a direct image URL for *artist_name*.

        Parameters
        ----------
        artist_name:
            The artist name as supplied by the caller (already trimmed).

        Returns
        -------
        str
            Absolute URL of the image.

        Raises
        ------
        artist_images.utils.errors.SourceUnavailableError
            On network failure, unparseable page, no image found, or when
            only a placeholder image is available.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return the identifier stored in ``CachedImageRecord.source``."""
