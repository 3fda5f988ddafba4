"""Command-line tools for the artist image service.

- ``python -m artist_images.cli resolve <name>`` -- resolve one artist
- ``python -m artist_images.cli stats`` -- report the cache size

CLI commands build their own components with ``main._build_all`` and do
not talk to a running server.
"""
