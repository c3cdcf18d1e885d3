"""
Custom Exception Types for the storage gateway.

Every failure the service reports to a caller belongs to one of a small set
of families (not found, conflict, validation, authentication, forbidden,
blob store). Raw SQLAlchemy and botocore errors are translated into these
types at the boundary closest to the store that raised them.
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class SGSError(Exception):
  """
  Base exception for all storage gateway errors.

  Attributes:
      message: Human-readable error message
      error_code: Application-specific error code for categorization
      details: Additional error context and metadata
      timestamp: When the error occurred
  """

  status_code = 500

  def __init__(
    self,
    message: str,
    error_code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
  ):
    super().__init__(message)
    self.message = message
    self.error_code = error_code or self.__class__.__name__
    self.details = details or {}
    self.timestamp = datetime.now(timezone.utc).isoformat()

  def to_dict(self) -> Dict[str, Any]:
    """Convert exception to dictionary for API responses."""
    return {
      "error": self.error_code,
      "message": self.message,
      "details": self.details,
      "timestamp": self.timestamp,
    }


# ============================================================================
# Not Found
# ============================================================================


class NotFoundError(SGSError):
  """Raised when a referenced record does not exist."""

  status_code = 404


class ProjectNotFoundError(NotFoundError):
  """Raised when a project does not exist."""

  def __init__(self, project_id: str):
    super().__init__(
      "Project not found",
      error_code="PROJECT_NOT_FOUND",
      details={"project_id": project_id},
    )


class FileNotFoundInProjectError(NotFoundError):
  """Raised when a file record does not exist."""

  def __init__(self, file_id: str):
    super().__init__(
      "File not found",
      error_code="FILE_NOT_FOUND",
      details={"file_id": file_id},
    )


class APIKeyNotFoundError(NotFoundError):
  """Raised when an API key is absent, or a revoke affected no rows."""

  def __init__(self, key_id: str):
    super().__init__(
      "API key not found",
      error_code="API_KEY_NOT_FOUND",
      details={"key_id": key_id},
    )


# ============================================================================
# Conflict
# ============================================================================


class ConflictError(SGSError):
  """Raised when a write collides with an existing record."""

  status_code = 409


class DuplicateProjectError(ConflictError):
  """Raised when a bucket name is already claimed by another project."""

  def __init__(self, bucket: str):
    super().__init__(
      f"Project with bucket '{bucket}' already exists",
      error_code="PROJECT_EXISTS",
      details={"bucket": bucket},
    )


# ============================================================================
# Validation
# ============================================================================


class ValidationError(SGSError):
  """Raised when input fails validation."""

  status_code = 422

  def __init__(
    self,
    message: str,
    field: Optional[str] = None,
    value: Any = None,
    error_code: str = "VALIDATION_ERROR",
    **kwargs,
  ):
    details = {}
    if field:
      details["field"] = field
    if value is not None:
      details["value"] = str(value)[:100]
    details.update(kwargs)
    super().__init__(message, error_code=error_code, details=details)


class ExpiryWindowError(ValidationError):
  """Raised when a requested expiry falls outside the allowed window."""

  def __init__(self, message: str, expires_at: datetime, **kwargs):
    super().__init__(
      message,
      field="expires_at",
      value=expires_at.isoformat(),
      error_code="EXPIRY_OUT_OF_RANGE",
      **kwargs,
    )


# ============================================================================
# Authentication / Authorization
# ============================================================================


class AuthenticationError(SGSError):
  """
  Raised when a credential is missing, malformed, expired, or revoked.

  The message is identical for every cause so callers cannot probe which
  check failed.
  """

  status_code = 401

  def __init__(self, message: str = "Invalid or expired credentials"):
    super().__init__(message, error_code="AUTHENTICATION_FAILED")


class ForbiddenError(SGSError):
  """Raised when a valid principal addresses a resource outside its scope."""

  status_code = 403

  def __init__(self, message: str = "Access denied", **details):
    super().__init__(message, error_code="FORBIDDEN", details=details)


# ============================================================================
# Blob Store
# ============================================================================


class StoreError(SGSError):
  """Raised when a blob store call, or the commit paired with one, fails."""

  status_code = 502

  def __init__(
    self,
    message: str,
    operation: Optional[str] = None,
    error_code: str = "STORE_ERROR",
    **kwargs,
  ):
    details = {"operation": operation} if operation else {}
    details.update(kwargs)
    super().__init__(message, error_code=error_code, details=details)


class CompensationFailure(SGSError):
  """
  Raised internally when a compensating action fails.

  Never propagated to callers: it is logged and recorded in the outbox
  while the primary failure is returned.
  """

  def __init__(self, action: str, bucket: str, object_name: Optional[str] = None):
    details = {"action": action, "bucket": bucket}
    if object_name:
      details["object_name"] = object_name
    super().__init__(
      f"Compensation {action} failed for bucket '{bucket}'",
      error_code="COMPENSATION_FAILED",
      details=details,
    )
