"""
Compensation outbox processing.

Blob store removals that could not be completed inline are recorded as
``CompensationTask`` rows. The reconciler retries them until they succeed
or run out of attempts, at which point they are marked abandoned for an
operator to inspect.
"""

import asyncio
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from sgs.config import env
from sgs.exceptions import StoreError
from sgs.logger import saga_logger as logger
from sgs.models.iam import (
  CompensationAction,
  CompensationStatus,
  CompensationTask,
  Project,
)
from sgs.operations.aws.s3 import BlobStore


def execute_removal(
  blob_store: BlobStore,
  session: Session,
  action: str,
  bucket: str,
  object_name: Optional[str] = None,
) -> bool:
  """
  Perform a compensating removal.

  Returns False when the removal was skipped because a committed project
  holds the bucket, True when the removal ran. Only a create that lost the
  name to a concurrent create can get here with a claimed bucket; deleted
  buckets cannot be reclaimed while their removal is outstanding.
  Raises StoreError when the blob store call fails.
  """
  if action == CompensationAction.REMOVE_BUCKET.value:
    if Project.get_by_bucket(bucket, session) is not None:
      logger.warning(
        f"Skipping removal of bucket {bucket}: claimed by a committed project",
        extra={"component": "saga", "action": "compensation_skipped", "bucket": bucket},
      )
      return False
    blob_store.remove_bucket(bucket)
  elif action == CompensationAction.REMOVE_OBJECT.value:
    blob_store.remove_object(bucket, object_name)
  else:
    raise ValueError(f"Unknown compensation action: {action}")
  return True


@dataclass
class ReconcileResult:
  processed: int = 0
  completed: int = 0
  failed: int = 0
  abandoned: int = 0
  task_ids: List[str] = field(default_factory=list)


class CompensationReconciler:
  """Drains pending compensation tasks."""

  def __init__(
    self,
    session_factory: sessionmaker,
    blob_store: BlobStore,
    batch_size: Optional[int] = None,
    max_attempts: Optional[int] = None,
  ):
    self.session_factory = session_factory
    self.blob_store = blob_store
    self.batch_size = batch_size or env.RECONCILER_BATCH_SIZE
    self.max_attempts = max_attempts or env.RECONCILER_MAX_ATTEMPTS

  def process_task(self, task: CompensationTask, session: Session) -> bool:
    """Attempt one task. Returns True if it is now completed."""
    log_extra = {
      "component": "saga",
      "action": "compensation_retry",
      "bucket": task.bucket,
      "object_name": task.object_name,
      "metadata": {
        "task_id": task.id,
        "operation": task.operation,
        "resource_id": task.resource_id,
        "attempt": task.attempts + 1,
      },
    }
    try:
      execute_removal(
        self.blob_store, session, task.action, task.bucket, task.object_name
      )
    except StoreError as e:
      task.record_failure(str(e), self.max_attempts, session)
      if task.status == CompensationStatus.ABANDONED.value:
        logger.error(
          f"Compensation task {task.id} abandoned after {task.attempts} attempts. "
          f"Manual cleanup may be required.",
          extra=log_extra,
        )
      else:
        logger.warning(f"Compensation task {task.id} failed: {e}", extra=log_extra)
      return False

    task.mark_completed(session)
    logger.info(f"Compensation task {task.id} completed", extra=log_extra)
    return True

  def run_once(self) -> ReconcileResult:
    """Process one batch of pending tasks, oldest first."""
    result = ReconcileResult()
    session = self.session_factory()
    try:
      for task in CompensationTask.get_pending(session, limit=self.batch_size):
        result.processed += 1
        result.task_ids.append(task.id)
        if self.process_task(task, session):
          result.completed += 1
        elif task.status == CompensationStatus.ABANDONED.value:
          result.abandoned += 1
        else:
          result.failed += 1
    except SQLAlchemyError:
      session.rollback()
      raise
    finally:
      session.close()

    if result.processed:
      logger.info(
        f"Reconciler processed {result.processed} tasks "
        f"({result.completed} completed, {result.failed} failed, "
        f"{result.abandoned} abandoned)"
      )
    return result

  async def run_forever(self, interval_seconds: Optional[float] = None) -> None:
    """Background loop for the application lifespan."""
    interval = interval_seconds or env.RECONCILER_INTERVAL_SECONDS
    logger.info(f"Compensation reconciler started (interval {interval}s)")
    while True:
      try:
        await asyncio.to_thread(self.run_once)
      except asyncio.CancelledError:
        raise
      except Exception as e:
        logger.error(f"Reconciler pass failed: {e}", exc_info=True)
      await asyncio.sleep(interval)
