"""HTTP facade for the artist image service (FastAPI router, schemas, middleware)."""

from artist_images.api.routes import router

__all__ = ["router"]
