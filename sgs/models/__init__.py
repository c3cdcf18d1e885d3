from .iam import (
  CompensationTask,
  Project,
  ProjectAPIKey,
  ProjectFile,
  User,
)

__all__ = [
  "CompensationTask",
  "Project",
  "ProjectAPIKey",
  "ProjectFile",
  "User",
]
