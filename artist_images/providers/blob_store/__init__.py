"""Blob store providers.

S3BlobStore talks to any S3-compatible endpoint; in deployment that is a
MinIO server with a public-read bucket.
"""

from artist_images.providers.blob_store.s3_blob_store import S3BlobStore

__all__ = ["S3BlobStore"]
