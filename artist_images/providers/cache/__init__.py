"""Cache store providers.

SQLiteImageCacheStore is the durable store used in deployment.
MemoryImageCacheStore keeps records in a process-local dict and is used for
development and tests.
"""

from artist_images.providers.cache.memory_image_cache_store import MemoryImageCacheStore
from artist_images.providers.cache.sqlite_image_cache_store import SQLiteImageCacheStore

__all__ = ["MemoryImageCacheStore", "SQLiteImageCacheStore"]
