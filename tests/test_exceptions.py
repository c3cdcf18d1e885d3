"""Tests for the error taxonomy."""

from datetime import datetime, timezone

import pytest

from sgs.exceptions import (
  APIKeyNotFoundError,
  AuthenticationError,
  CompensationFailure,
  ConflictError,
  DuplicateProjectError,
  ExpiryWindowError,
  FileNotFoundInProjectError,
  ForbiddenError,
  NotFoundError,
  ProjectNotFoundError,
  SGSError,
  StoreError,
  ValidationError,
)


class TestStatusCodes:
  @pytest.mark.parametrize(
    "error,status",
    [
      (ProjectNotFoundError("prj_1"), 404),
      (FileNotFoundInProjectError("fil_1"), 404),
      (APIKeyNotFoundError("pak_1"), 404),
      (DuplicateProjectError("proj-abc"), 409),
      (ValidationError("bad"), 422),
      (ExpiryWindowError("too soon", datetime(2024, 1, 1, tzinfo=timezone.utc)), 422),
      (AuthenticationError(), 401),
      (ForbiddenError(), 403),
      (StoreError("down", operation="put_object"), 502),
    ],
  )
  def test_status_code(self, error, status):
    assert isinstance(error, SGSError)
    assert error.status_code == status

  def test_families(self):
    assert issubclass(ProjectNotFoundError, NotFoundError)
    assert issubclass(DuplicateProjectError, ConflictError)
    assert issubclass(ExpiryWindowError, ValidationError)


class TestErrorDetails:
  def test_to_dict(self):
    error = ProjectNotFoundError("prj_1")
    data = error.to_dict()

    assert data["error"] == "PROJECT_NOT_FOUND"
    assert data["message"] == "Project not found"
    assert data["details"] == {"project_id": "prj_1"}
    assert data["timestamp"]

  def test_default_error_code_is_class_name(self):
    assert SGSError("boom").error_code == "SGSError"

  def test_validation_details(self):
    error = ValidationError("bad bucket", field="bucket", value="x" * 200)
    assert error.details["field"] == "bucket"
    assert len(error.details["value"]) == 100
    assert error.error_code == "VALIDATION_ERROR"

  def test_expiry_window_details(self):
    error = ExpiryWindowError("too soon", datetime(2024, 1, 1, tzinfo=timezone.utc))
    assert error.error_code == "EXPIRY_OUT_OF_RANGE"
    assert error.details["field"] == "expires_at"
    assert error.details["value"].startswith("2024-01-01T00:00:00")

  def test_store_error_details(self):
    error = StoreError("down", operation="put_object", s3_error_code="SlowDown")
    assert error.details == {"operation": "put_object", "s3_error_code": "SlowDown"}

  def test_authentication_message_is_uniform(self):
    assert AuthenticationError().message == "Invalid or expired credentials"

  def test_compensation_failure(self):
    failure = CompensationFailure("remove_object", "proj-abc", "proj-abc-1-a.txt")
    assert failure.details["bucket"] == "proj-abc"
    assert failure.details["object_name"] == "proj-abc-1-a.txt"
    assert "remove_object" in failure.message
