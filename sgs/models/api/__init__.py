from .api_keys import (
  APIKeyInfo,
  APIKeysResponse,
  CreateAPIKeyRequest,
  CreateAPIKeyResponse,
)
from .common import ErrorResponse, HealthStatus, SuccessResponse
from .files import FileListResponse, FileResponse, ShareFileRequest, ShareFileResponse
from .projects import CreateProjectRequest, ProjectListResponse, ProjectResponse

__all__ = [
  "APIKeyInfo",
  "APIKeysResponse",
  "CreateAPIKeyRequest",
  "CreateAPIKeyResponse",
  "ErrorResponse",
  "FileListResponse",
  "FileResponse",
  "HealthStatus",
  "ProjectListResponse",
  "ProjectResponse",
  "ShareFileRequest",
  "ShareFileResponse",
  "SuccessResponse",
  "CreateProjectRequest",
]
