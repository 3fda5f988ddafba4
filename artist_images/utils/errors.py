"""Custom exception hierarchy for the artist image service.

All application exceptions inherit from :class:`ArtistImageError`, which
carries an optional ``provider_name`` so error handlers can identify which
collaborator (e.g. "last.fm", "sqlite", "minio") caused the failure.

The hierarchy is organized by how the resolver treats each failure:

    ArtistImageError  (base -- catch-all for any service error)
    +-- InvalidInputError       (blank artist name; rejected before any I/O)
    +-- SourceUnavailableError  (image source could not produce a URL; terminal)
    +-- CacheStoreError         (cache table unavailable; degrades to miss / skip)
    +-- BlobStoreError          (object storage failure; degrades to source URL)
    +-- ConfigurationError      (startup / missing config)

Only ``InvalidInputError`` and ``SourceUnavailableError`` ever reach a
caller of :meth:`ImageResolver.resolve`.  Storage errors are logged and
absorbed by the resolver.
"""


class ArtistImageError(Exception):
    """Base exception for all artist image service errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which collaborator triggered the error.
    The ``__str__`` method prefixes the provider name in brackets for
    structured log output, e.g. ``[last.fm] no image found on page``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Caller-visible errors
# ---------------------------------------------------------------------------

class InvalidInputError(ArtistImageError):
    """Raised when the artist name is empty or whitespace only."""

    def __init__(
        self,
        message: str = "artist name is required",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class SourceUnavailableError(ArtistImageError):
    """Raised when an image source cannot produce an image URL.

    Covers network failures, unparseable pages, pages with no image and
    pages that only offer a placeholder.  The underlying exception, when
    there is one, is chained via ``raise ... from exc``.
    """

    def __init__(
        self,
        message: str = "Image source is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Storage errors (absorbed by the resolver)
# ---------------------------------------------------------------------------

class CacheStoreError(ArtistImageError):
    """Raised when the cache table cannot be read or written."""

    def __init__(
        self,
        message: str = "Cache store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class BlobStoreError(ArtistImageError):
    """Raised when downloading, uploading or bucket setup fails."""

    def __init__(
        self,
        message: str = "Blob store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------

class ConfigurationError(ArtistImageError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
