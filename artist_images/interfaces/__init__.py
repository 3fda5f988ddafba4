"""Public interface definitions for the service's collaborators.

Every storage backend and upstream site is accessed through the abstract
base classes defined here.  Concrete adapters live in
``artist_images/providers/`` and are chosen in ``artist_images/main.py``.

    Interface          ->  Concrete implementations
    -------------------------------------------------------------
    IImageCacheStore   ->  SQLiteImageCacheStore, MemoryImageCacheStore
    IImageSource       ->  LastFmImageSource, DiscogsImageSource
    IBlobStore         ->  S3BlobStore
"""

from artist_images.interfaces.blob_store import IBlobStore
from artist_images.interfaces.image_cache_store import IImageCacheStore
from artist_images.interfaces.image_source import IImageSource

__all__ = [
    "IBlobStore",
    "IImageCacheStore",
    "IImageSource",
]
