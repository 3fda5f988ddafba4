"""Image source providers.

Both sources scrape public web pages and normalize every failure ("no
result", "only placeholder", HTTP errors) to SourceUnavailableError.
"""

from artist_images.providers.image_source.discogs_image_source import DiscogsImageSource
from artist_images.providers.image_source.lastfm_image_source import LastFmImageSource

__all__ = ["DiscogsImageSource", "LastFmImageSource"]
