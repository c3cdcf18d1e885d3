"""Operations layer for cross-store workflows."""

from .aws.s3 import BlobStore
from .storage.reconciler import CompensationReconciler, ReconcileResult
from .storage.saga import StorageSaga

__all__ = [
  "BlobStore",
  "CompensationReconciler",
  "ReconcileResult",
  "StorageSaga",
]
