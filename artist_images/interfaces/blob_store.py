"""Abstract base class for blob (object) storage.

The blob store keeps durable copies of artist images and exposes a public
URL for each stored object.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class IBlobStore(ABC):
    """Contract for object storage used to persist artist images."""

    @property
    @abstractmethod
    def bucket(self) -> str:
        """Name of the bucket objects are written to."""

    @abstractmethod
    async def ensure_bucket(self) -> None:
        """Create the bucket if needed and make its objects publicly readable.

        Raises
        ------
        artist_images.utils.errors.BlobStoreError
            If the store cannot be reached.  Fatal at application startup.
        """

    @abstractmethod
    async def put_object(self, key: str, data: bytes, content_type: str) -> str:
        """Store *data* under *key* and return the key.

        Raises
        ------
        artist_images.utils.errors.BlobStoreError
            If the upload fails.
        """

    @abstractmethod
    def public_url(self, key: str) -> str:
        """Return the public URL for the object stored under *key*."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier for the backend (e.g. ``"minio"``)."""
