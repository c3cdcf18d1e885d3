"""
Saga coordinator for operations spanning the metadata store and blob store.

The two stores fail independently and share no transaction, so each
composite operation runs its steps in a fixed order:

- create project / upload file: stage the row in an open transaction, write
  the blob, then commit. A blob failure only needs a local rollback; a
  commit failure needs the blob removed again (compensation).
- delete project / delete file: delete the row and record a pending
  compensation task in one transaction, commit, then remove the blob. A
  failed removal stays in the outbox for the reconciler, so a committed
  delete never resurrects a row whose blob is gone.

Compensation failures are logged and written to the outbox; they never
replace the primary error returned to the caller.
"""

import os
from typing import BinaryIO, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from sgs.config.constants import STORE_MAX_OBJECT_NAME_BYTES
from sgs.exceptions import (
  CompensationFailure,
  DuplicateProjectError,
  FileNotFoundInProjectError,
  ProjectNotFoundError,
  StoreError,
  ValidationError,
)
from sgs.logger import saga_logger as logger
from sgs.models.iam import (
  CompensationAction,
  CompensationTask,
  Project,
  ProjectFile,
  build_object_name,
)
from sgs.operations.aws.s3 import BUCKET_EXISTS_CODES, BlobStore
from sgs.operations.storage.reconciler import execute_removal
from sgs.utils.content_type import sniff_stream


def clean_filename(filename: Optional[str]) -> str:
  """Strip any client-side directory components from an upload's name."""
  name = os.path.basename((filename or "").replace("\\", "/")).strip()
  if not name or name in (".", ".."):
    raise ValidationError("A filename is required", field="filename", value=filename)
  return name


class StorageSaga:
  """Runs the four composite operations against both stores."""

  def __init__(self, session_factory: sessionmaker, blob_store: BlobStore):
    self.session_factory = session_factory
    self.blob_store = blob_store

  # ------------------------------------------------------------------
  # Create / upload
  # ------------------------------------------------------------------

  def create_project(self, owner_id: str, bucket: str) -> Project:
    """Create a project row and its bucket, or neither."""
    session = self.session_factory()
    try:
      try:
        project = Project.create(owner_id, bucket, session, commit=False)
      except IntegrityError as e:
        session.rollback()
        raise DuplicateProjectError(bucket) from e
      project_id = project.id

      # The bucket of a deleted project still holds its objects until the
      # queued removal finishes; the name stays taken until then.
      if CompensationTask.has_outstanding_bucket_removal(bucket, session):
        session.rollback()
        logger.warning(
          f"Bucket {bucket} is still awaiting removal; refusing to reuse it",
          extra={"component": "saga", "action": "create_project", "bucket": bucket},
        )
        raise DuplicateProjectError(bucket)

      try:
        self.blob_store.create_bucket(bucket)
      except StoreError as e:
        session.rollback()
        logger.warning(
          f"Bucket creation failed for {bucket}; project row rolled back",
          extra={"component": "saga", "action": "create_project", "bucket": bucket},
        )
        if e.details.get("s3_error_code") in BUCKET_EXISTS_CODES:
          raise DuplicateProjectError(bucket) from e
        raise

      try:
        session.commit()
      except SQLAlchemyError as e:
        session.rollback()
        logger.error(
          f"Commit failed after creating bucket {bucket}: {e}",
          extra={"component": "saga", "action": "create_project", "bucket": bucket},
        )
        self._compensate(
          CompensationAction.REMOVE_BUCKET,
          bucket,
          operation="create_project",
          resource_id=project_id,
        )
        if isinstance(e, IntegrityError):
          raise DuplicateProjectError(bucket) from e
        raise StoreError(
          "Failed to create project", operation="create_project", bucket=bucket
        ) from e

      logger.info(
        f"Project {project.id} created with bucket {bucket}",
        extra={
          "component": "saga",
          "action": "create_project",
          "project_id": project.id,
          "bucket": bucket,
          "user_id": owner_id,
        },
      )
      return project
    finally:
      session.close()

  def upload_file(
    self,
    project_id: str,
    filename: str,
    stream: BinaryIO,
    uploaded_by: str,
    declared_content_type: Optional[str] = None,
  ) -> ProjectFile:
    """
    Store an upload under ``<bucket>-<uuid>-<filename>`` and record it.

    Content type is detected from the leading bytes of ``stream``, falling
    back to ``declared_content_type``.
    """
    filename = clean_filename(filename)
    content_type, size = sniff_stream(stream, declared_content_type)

    session = self.session_factory()
    try:
      project = Project.get_by_id(project_id, session)
      if project is None:
        session.rollback()
        raise ProjectNotFoundError(project_id)

      bucket = project.bucket
      object_name = build_object_name(bucket, filename)
      overflow = len(object_name.encode("utf-8")) - STORE_MAX_OBJECT_NAME_BYTES
      if overflow > 0:
        session.rollback()
        raise ValidationError(
          "Filename is too long",
          field="filename",
          value=filename,
          max_bytes=len(filename.encode("utf-8")) - overflow,
        )
      file = ProjectFile.create(
        project_id=project.id,
        filename=filename,
        object_name=object_name,
        size=size,
        content_type=content_type,
        uploaded_by=uploaded_by,
        session=session,
        commit=False,
      )
      file_id = file.id
      # Keep the bucket join readable after the session closes
      file.project = project

      try:
        self.blob_store.put_object(bucket, object_name, stream, content_type)
      except StoreError:
        session.rollback()
        logger.warning(
          f"Upload of {object_name} failed; file row rolled back",
          extra={
            "component": "saga",
            "action": "upload_file",
            "project_id": project_id,
            "bucket": bucket,
            "object_name": object_name,
          },
        )
        raise

      try:
        session.commit()
      except SQLAlchemyError as e:
        session.rollback()
        logger.error(
          f"Commit failed after uploading {object_name}: {e}",
          extra={
            "component": "saga",
            "action": "upload_file",
            "bucket": bucket,
            "object_name": object_name,
          },
        )
        self._compensate(
          CompensationAction.REMOVE_OBJECT,
          bucket,
          operation="upload_file",
          resource_id=file_id,
          object_name=object_name,
        )
        raise StoreError(
          "Failed to upload file",
          operation="upload_file",
          bucket=bucket,
        ) from e

      logger.info(
        f"File {file.id} stored as {object_name} ({size} bytes, {content_type})",
        extra={
          "component": "saga",
          "action": "upload_file",
          "project_id": project_id,
          "file_id": file.id,
          "bucket": bucket,
          "object_name": object_name,
          "user_id": uploaded_by,
        },
      )
      return file
    finally:
      session.close()

  # ------------------------------------------------------------------
  # Delete
  # ------------------------------------------------------------------

  def delete_project(self, project_id: str) -> Project:
    """Delete a project with its files and keys, then remove its bucket."""
    session = self.session_factory()
    try:
      project = Project.get_by_id(project_id, session)
      if project is None:
        session.rollback()
        raise ProjectNotFoundError(project_id)

      bucket = project.bucket
      session.delete(project)
      task = CompensationTask.create(
        CompensationAction.REMOVE_BUCKET,
        bucket=bucket,
        operation="delete_project",
        resource_id=project_id,
        session=session,
        commit=False,
      )
      self._commit_delete(session, "delete_project", project_id)

      self._finish_delete(task, "delete_project")
      return project
    finally:
      session.close()

  def delete_file(self, file_id: str) -> ProjectFile:
    """Delete a file row, then remove its object."""
    session = self.session_factory()
    try:
      file = ProjectFile.get_by_id(file_id, session)
      if file is None:
        session.rollback()
        raise FileNotFoundInProjectError(file_id)

      bucket = file.project.bucket
      session.delete(file)
      task = CompensationTask.create(
        CompensationAction.REMOVE_OBJECT,
        bucket=bucket,
        operation="delete_file",
        resource_id=file_id,
        object_name=file.object_name,
        session=session,
        commit=False,
      )
      self._commit_delete(session, "delete_file", file_id)

      self._finish_delete(task, "delete_file")
      return file
    finally:
      session.close()

  def _commit_delete(self, session, operation: str, resource_id: str) -> None:
    try:
      session.commit()
    except SQLAlchemyError as e:
      # Nothing has touched the blob store yet
      session.rollback()
      raise StoreError(
        f"Failed to {operation.replace('_', ' ')}",
        operation=operation,
        resource_id=resource_id,
      ) from e

  def _finish_delete(self, task: CompensationTask, operation: str) -> None:
    """Run the committed removal now; leave it pending on failure."""
    session = self.session_factory()
    try:
      task = CompensationTask.get_by_id(task.id, session)
      try:
        execute_removal(
          self.blob_store, session, task.action, task.bucket, task.object_name
        )
      except StoreError as e:
        session.rollback()
        logger.error(
          f"Blob removal after {operation} failed; task {task.id} left for the reconciler: {e}",
          extra={
            "component": "saga",
            "action": operation,
            "bucket": task.bucket,
            "object_name": task.object_name,
            "metadata": {"task_id": task.id, "resource_id": task.resource_id},
          },
        )
        return
      task.mark_completed(session)
    except SQLAlchemyError as e:
      session.rollback()
      logger.error(
        f"Could not update compensation task {task.id} after {operation}: {e}",
        extra={"component": "saga", "action": operation},
      )
    finally:
      session.close()

  # ------------------------------------------------------------------
  # Compensation
  # ------------------------------------------------------------------

  def _compensate(
    self,
    action: CompensationAction,
    bucket: str,
    operation: str,
    resource_id: str,
    object_name: Optional[str] = None,
  ) -> bool:
    """
    Undo a blob write after a failed commit. Never raises.

    Returns True when the blob was removed (or needed no removal).
    """
    log_extra = {
      "component": "saga",
      "action": "compensate",
      "bucket": bucket,
      "object_name": object_name,
      "metadata": {"operation": operation, "resource_id": resource_id},
    }
    logger.warning(f"Compensating {operation}: {action.value} {bucket}", extra=log_extra)

    session = self.session_factory()
    try:
      execute_removal(self.blob_store, session, action.value, bucket, object_name)
      logger.info(f"Compensation {action.value} succeeded", extra=log_extra)
      return True
    except (StoreError, SQLAlchemyError) as e:
      session.rollback()
      failure = CompensationFailure(action.value, bucket, object_name)
      task_id = self._record_outbox(
        action, bucket, operation, resource_id, object_name, str(e)
      )
      log_extra["metadata"]["task_id"] = task_id
      logger.error(
        f"{failure.message}: {e}. "
        + (
          f"Queued as task {task_id}."
          if task_id
          else "Manual cleanup may be required."
        ),
        extra=log_extra,
      )
      return False
    finally:
      session.close()

  def _record_outbox(
    self,
    action: CompensationAction,
    bucket: str,
    operation: str,
    resource_id: str,
    object_name: Optional[str],
    error: str,
  ) -> Optional[str]:
    """Best-effort outbox write in a fresh transaction."""
    session = self.session_factory()
    try:
      task = CompensationTask.create(
        action,
        bucket=bucket,
        operation=operation,
        resource_id=resource_id,
        object_name=object_name,
        last_error=error,
        session=session,
      )
      return task.id
    except SQLAlchemyError as e:
      session.rollback()
      logger.error(f"Failed to record compensation task: {e}")
      return None
    finally:
      session.close()
