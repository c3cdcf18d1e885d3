"""Tests for the compensation outbox reconciler."""

import asyncio

import pytest

from sgs.exceptions import StoreError
from sgs.models.iam import (
  CompensationAction,
  CompensationStatus,
  CompensationTask,
  Project,
)
from sgs.operations.storage.reconciler import CompensationReconciler, execute_removal


def _queue(services, action, bucket, object_name=None, operation="delete_file"):
  session = services.session_factory()
  try:
    task = CompensationTask.create(
      action,
      bucket=bucket,
      operation=operation,
      resource_id="res_1",
      object_name=object_name,
      session=session,
    )
    return task.id
  finally:
    session.close()


def _load(services, task_id):
  session = services.session_factory()
  try:
    return CompensationTask.get_by_id(task_id, session)
  finally:
    session.close()


def _fail_removals(monkeypatch, blob_store):
  def _raise(*args, **kwargs):
    raise StoreError("Blob store remove_object failed", operation="remove_object")

  monkeypatch.setattr(blob_store, "remove_object", _raise)
  monkeypatch.setattr(blob_store, "remove_bucket", _raise)


class TestExecuteRemoval:
  def test_removes_object(self, services, s3_client, db_session):
    s3_client.create_bucket(Bucket="orphans")
    s3_client.put_object(Bucket="orphans", Key="orphans-1-a.txt", Body=b"a")

    assert execute_removal(
      services.blob_store,
      db_session,
      CompensationAction.REMOVE_OBJECT.value,
      "orphans",
      "orphans-1-a.txt",
    )
    assert s3_client.list_objects_v2(Bucket="orphans").get("KeyCount") == 0

  def test_removes_unclaimed_bucket(self, services, s3_client, db_session):
    s3_client.create_bucket(Bucket="orphans")

    assert execute_removal(
      services.blob_store, db_session, CompensationAction.REMOVE_BUCKET.value, "orphans"
    )
    assert s3_client.list_buckets()["Buckets"] == []

  def test_skips_bucket_claimed_by_a_project(self, services, s3_client, db_session, project):
    removed = execute_removal(
      services.blob_store, db_session, CompensationAction.REMOVE_BUCKET.value, "proj-abc"
    )

    assert removed is False
    assert [b["Name"] for b in s3_client.list_buckets()["Buckets"]] == ["proj-abc"]

  def test_missing_bucket_counts_as_removed(self, services, db_session):
    assert execute_removal(
      services.blob_store, db_session, CompensationAction.REMOVE_BUCKET.value, "gone"
    )

  def test_unknown_action(self, services, db_session):
    with pytest.raises(ValueError):
      execute_removal(services.blob_store, db_session, "archive", "bucket")


class TestCompensationReconciler:
  def test_run_once_completes_pending_tasks(self, services, s3_client):
    s3_client.create_bucket(Bucket="orphans")
    s3_client.put_object(Bucket="orphans", Key="orphans-1-a.txt", Body=b"a")
    object_task = _queue(
      services, CompensationAction.REMOVE_OBJECT, "orphans", "orphans-1-a.txt"
    )

    result = services.reconciler.run_once()

    assert result.processed == 1
    assert result.completed == 1
    assert result.task_ids == [object_task]
    task = _load(services, object_task)
    assert task.status == CompensationStatus.COMPLETED.value
    assert task.attempts == 1

  def test_run_once_with_nothing_pending(self, services):
    result = services.reconciler.run_once()
    assert result.processed == 0

  def test_failure_counts_attempt(self, services, monkeypatch):
    task_id = _queue(services, CompensationAction.REMOVE_OBJECT, "orphans", "k")
    _fail_removals(monkeypatch, services.blob_store)

    result = services.reconciler.run_once()

    assert result.failed == 1
    task = _load(services, task_id)
    assert task.status == CompensationStatus.PENDING.value
    assert task.attempts == 1
    assert "remove_object failed" in task.last_error

  def test_abandons_after_max_attempts(self, services, monkeypatch):
    task_id = _queue(services, CompensationAction.REMOVE_OBJECT, "orphans", "k")
    _fail_removals(monkeypatch, services.blob_store)

    # services fixture configures three attempts
    results = [services.reconciler.run_once() for _ in range(4)]

    assert [r.abandoned for r in results] == [0, 0, 1, 0]
    assert results[3].processed == 0
    task = _load(services, task_id)
    assert task.status == CompensationStatus.ABANDONED.value
    assert task.attempts == 3

  def test_reset_returns_task_to_queue(self, services, s3_client, monkeypatch):
    s3_client.create_bucket(Bucket="orphans")
    task_id = _queue(services, CompensationAction.REMOVE_BUCKET, "orphans")
    reconciler = CompensationReconciler(
      services.session_factory, services.blob_store, max_attempts=1
    )
    _fail_removals(monkeypatch, services.blob_store)
    reconciler.run_once()
    monkeypatch.undo()

    session = services.session_factory()
    try:
      CompensationTask.get_by_id(task_id, session).reset(session)
    finally:
      session.close()

    result = reconciler.run_once()
    assert result.completed == 1
    assert s3_client.list_buckets()["Buckets"] == []

  def test_reclaimed_bucket_is_left_alone(self, services, s3_client, project):
    task_id = _queue(
      services, CompensationAction.REMOVE_BUCKET, "proj-abc", operation="create_project"
    )

    result = services.reconciler.run_once()

    assert result.completed == 1
    assert _load(services, task_id).status == CompensationStatus.COMPLETED.value
    assert [b["Name"] for b in s3_client.list_buckets()["Buckets"]] == ["proj-abc"]

  def test_drains_delete_left_by_saga(self, services, s3_client, db_session, project, monkeypatch):
    def _raise(*args, **kwargs):
      raise StoreError("Blob store remove_bucket failed", operation="remove_bucket")

    monkeypatch.setattr(services.blob_store, "remove_bucket", _raise)
    services.saga.delete_project(project.id)
    monkeypatch.undo()
    assert Project.get_by_id(project.id, db_session) is None

    result = services.reconciler.run_once()

    assert result.completed == 1
    assert s3_client.list_buckets()["Buckets"] == []

  def test_run_forever_processes_until_cancelled(self, services, monkeypatch):
    calls = []
    monkeypatch.setattr(services.reconciler, "run_once", lambda: calls.append(1))

    async def _run():
      task = asyncio.create_task(services.reconciler.run_forever(interval_seconds=0.01))
      await asyncio.sleep(0.05)
      task.cancel()
      with pytest.raises(asyncio.CancelledError):
        await task

    asyncio.run(_run())
    assert len(calls) >= 1
