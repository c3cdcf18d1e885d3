from .s3 import BlobStore

__all__ = ["BlobStore"]
