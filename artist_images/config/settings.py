"""Application settings loaded from environment variables via pydantic-settings.

Configuration is read from two sources (in priority order):

  1. **Environment variables** -- e.g. ``MINIO_BUCKET=artist-images``
  2. **.env file** -- key=value lines in the working directory

Field names map to upper-cased env vars (``minio_use_ssl`` -> ``MINIO_USE_SSL``),
which keeps the variable names the service has always been deployed with.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Artist image service settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === HTTP server ===
    host: str = "0.0.0.0"
    port: int = 8080

    # === Cache store ===
    db_path: str = "data/artist_images.db"
    cache_backend: str = "sqlite"  # "sqlite" or "memory"

    # === Blob store (S3-compatible, e.g. MinIO) ===
    minio_endpoint: str = "localhost:9000"
    minio_access_key: str = ""
    minio_secret_key: str = ""
    minio_bucket: str = "artist-images"
    minio_use_ssl: bool = False
    # Host clients use to fetch stored objects; empty means "same as endpoint".
    minio_public_endpoint: str = ""

    # === Image source ===
    image_source: str = "lastfm"  # "lastfm" or "discogs"

    # === App config ===
    app_env: str = "development"
    log_level: str = "INFO"

    def get_public_endpoint(self) -> str:
        """Return the host clients should use for stored objects."""
        return self.minio_public_endpoint or self.minio_endpoint
