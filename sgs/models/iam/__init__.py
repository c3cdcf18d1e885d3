"""Identity, project, and storage metadata models."""

from .compensation_task import (
  CompensationAction,
  CompensationStatus,
  CompensationTask,
)
from .project import Project
from .project_api_key import ProjectAPIKey
from .project_file import ProjectFile, build_object_name
from .user import User

__all__ = [
  "CompensationAction",
  "CompensationStatus",
  "CompensationTask",
  "Project",
  "ProjectAPIKey",
  "ProjectFile",
  "User",
  "build_object_name",
]
