"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

  1. config/config.yaml  -- static defaults checked into the repo
  2. .env file           -- local developer overrides (not committed)
  3. Environment vars    -- set at deploy time

``load_config`` reads the YAML file first, then deep-merges the
environment-backed values from :class:`Settings` on top.  Every component
factory in ``main`` reads from the resulting dict.
"""

from pathlib import Path

import yaml

from artist_images.config.settings import Settings

_DEFAULTS: dict = {
    "resolver": {
        "ttl_days": 7,
        "serve_stale_on_error": False,
        "coalesce_requests": True,
    },
    "http": {
        "timeout": 10.0,
        "user_agent": (
            "Mozilla/5.0 (X11; Linux x86_64; rv:109.0) Gecko/20100101 Firefox/115.0"
        ),
    },
}


def load_config(
    path: str = "config/config.yaml",
    settings: Settings | None = None,
    overrides: dict | None = None,
) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.
        settings: Settings instance to take env overrides from. A fresh one is
                  built when omitted.
        overrides: Applied last, after the environment. Callers use this to
                   adjust single keys without touching files or env vars.

    Returns:
        Fully resolved configuration dictionary.
    """
    # Start from a copy so callers can never mutate _DEFAULTS.
    config: dict = {}
    _deep_merge(config, _DEFAULTS)

    # A missing file is fine; built-in defaults cover every key.
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
        _deep_merge(config, yaml_config)

    settings = settings or Settings()
    # Secrets (MINIO_ACCESS_KEY / MINIO_SECRET_KEY) stay on Settings only.
    env_overrides = {
        "app": {
            "host": settings.host,
            "port": settings.port,
            "env": settings.app_env,
        },
        "cache": {
            "backend": settings.cache_backend,
            "db_path": settings.db_path,
        },
        "blob_store": {
            "endpoint": settings.minio_endpoint,
            "public_endpoint": settings.get_public_endpoint(),
            "bucket": settings.minio_bucket,
            "use_ssl": settings.minio_use_ssl,
        },
        "image_source": settings.image_source,
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(config, env_overrides)
    if overrides:
        _deep_merge(config, overrides)
    return config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        elif isinstance(value, dict):
            # Copy nested dicts rather than aliasing the caller's.
            base[key] = {}
            _deep_merge(base[key], value)
        else:
            base[key] = value
