"""Ownership checks shared by the routers."""

from sqlalchemy.orm import Session

from ..exceptions import FileNotFoundInProjectError, ForbiddenError, ProjectNotFoundError
from ..middleware.auth.dependencies import Principal
from ..models.iam import Project, ProjectFile
from ..security import SecurityAuditLogger


def get_owned_project(project_id: str, principal: Principal, db: Session) -> Project:
  """Load a project the principal owns."""
  project = Project.get_by_id(project_id, db)
  if project is None:
    raise ProjectNotFoundError(project_id)
  if not project.is_owned_by(principal.user_id):
    SecurityAuditLogger.log_authorization_denied(
      user_id=principal.user_id, resource=f"project:{project_id}", action="access"
    )
    raise ForbiddenError("You do not own this project")
  return project


def get_file(file_id: str, db: Session) -> ProjectFile:
  file = ProjectFile.get_by_id(file_id, db)
  if file is None:
    raise FileNotFoundInProjectError(file_id)
  return file


def get_managed_file(file_id: str, principal: Principal, db: Session) -> ProjectFile:
  """Load a file the principal uploaded or whose project the principal owns."""
  file = get_file(file_id, db)
  if file.uploaded_by != principal.user_id and not file.project.is_owned_by(
    principal.user_id
  ):
    SecurityAuditLogger.log_authorization_denied(
      user_id=principal.user_id, resource=f"file:{file_id}", action="manage"
    )
    raise ForbiddenError("You do not have access to this file")
  return file
