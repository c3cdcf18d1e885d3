from .reconciler import CompensationReconciler, ReconcileResult, execute_removal
from .saga import StorageSaga

__all__ = [
  "CompensationReconciler",
  "ReconcileResult",
  "StorageSaga",
  "execute_removal",
]
