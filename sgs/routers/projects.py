"""Project endpoints: create/delete run through the storage saga."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db_session
from ..middleware.auth.dependencies import (
  Principal,
  get_current_principal,
  get_services,
  get_session_principal,
)
from ..models.api.common import ErrorResponse, SuccessResponse
from ..models.api.projects import (
  CreateProjectRequest,
  ProjectListResponse,
  ProjectResponse,
)
from ..models.iam import Project
from ..services import ServiceContainer
from .access import get_owned_project

router = APIRouter(tags=["Projects"])


@router.post(
  "/projects",
  response_model=ProjectResponse,
  summary="Create Project",
  description="Create a project and its backing bucket. Both exist afterwards, or neither does.",
  status_code=status.HTTP_201_CREATED,
  operation_id="createProject",
  responses={409: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
def create_project(
  request: CreateProjectRequest,
  principal: Principal = Depends(get_session_principal),
  services: ServiceContainer = Depends(get_services),
) -> ProjectResponse:
  project = services.saga.create_project(principal.user_id, request.bucket)
  return ProjectResponse.model_validate(project)


@router.get(
  "/projects",
  response_model=ProjectListResponse,
  summary="List Projects",
  description="List the caller's projects with file counts and total size.",
  operation_id="listProjects",
)
def list_projects(
  principal: Principal = Depends(get_session_principal),
  db: Session = Depends(get_db_session),
) -> ProjectListResponse:
  rows = Project.get_by_owner_with_stats(principal.user_id, db)
  projects = []
  for project, file_count, total_size in rows:
    item = ProjectResponse.model_validate(project)
    item.file_count = file_count
    item.total_file_size = total_size
    projects.append(item)
  return ProjectListResponse(projects=projects)


@router.get(
  "/projects/{project_id}",
  response_model=ProjectResponse,
  summary="Get Project",
  operation_id="getProject",
  responses={404: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
def get_project(
  project_id: str,
  principal: Principal = Depends(get_current_principal),
  db: Session = Depends(get_db_session),
) -> ProjectResponse:
  project = get_owned_project(project_id, principal, db)
  return ProjectResponse.model_validate(project)


@router.delete(
  "/projects/{project_id}",
  response_model=SuccessResponse,
  summary="Delete Project",
  description="Delete a project with its files and API keys, then remove its bucket.",
  operation_id="deleteProject",
  responses={404: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
def delete_project(
  project_id: str,
  principal: Principal = Depends(get_session_principal),
  services: ServiceContainer = Depends(get_services),
  db: Session = Depends(get_db_session),
) -> SuccessResponse:
  get_owned_project(project_id, principal, db)
  project = services.saga.delete_project(project_id)
  return SuccessResponse(
    message="Project deleted successfully",
    data={"project_id": project.id, "bucket": project.bucket},
  )
