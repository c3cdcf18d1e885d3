"""Project API key management endpoints."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db_session
from ..middleware.auth.dependencies import (
  Principal,
  get_services,
  get_session_principal,
)
from ..models.api.api_keys import (
  APIKeyInfo,
  APIKeysResponse,
  CreateAPIKeyRequest,
  CreateAPIKeyResponse,
)
from ..models.api.common import ErrorResponse, SuccessResponse
from ..models.iam import ProjectAPIKey
from ..services import ServiceContainer

router = APIRouter(tags=["API Keys"])


def _to_info(api_key: ProjectAPIKey) -> APIKeyInfo:
  return APIKeyInfo(
    id=api_key.id,
    name=api_key.name,
    project_id=api_key.project_id,
    user_id=api_key.user_id,
    prefix=api_key.lookup_prefix,
    is_valid=api_key.is_valid(),
    expires_at=api_key.expires_at,
    revoked_at=api_key.revoked_at,
    last_used_at=api_key.last_used_at,
    created_at=api_key.created_at,
  )


@router.post(
  "/projects/{project_id}/api-keys",
  response_model=CreateAPIKeyResponse,
  summary="Create API Key",
  description="Issue an API key bound to this project. The key is shown only once.",
  status_code=status.HTTP_201_CREATED,
  operation_id="createProjectAPIKey",
  responses={403: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def create_api_key(
  project_id: str,
  request: CreateAPIKeyRequest,
  principal: Principal = Depends(get_session_principal),
  services: ServiceContainer = Depends(get_services),
  db: Session = Depends(get_db_session),
) -> CreateAPIKeyResponse:
  api_key, plain_key = services.api_keys.issue(
    project_id=project_id,
    user_id=principal.user_id,
    name=request.name,
    expires_at=request.expires_at,
    session=db,
  )
  return CreateAPIKeyResponse(api_key=_to_info(api_key), key=plain_key)


@router.get(
  "/projects/{project_id}/api-keys",
  response_model=APIKeysResponse,
  summary="List Project API Keys",
  operation_id="listProjectAPIKeys",
)
def list_project_api_keys(
  project_id: str,
  principal: Principal = Depends(get_session_principal),
  services: ServiceContainer = Depends(get_services),
  db: Session = Depends(get_db_session),
) -> APIKeysResponse:
  api_keys = services.api_keys.list_for_project(project_id, principal.user_id, db)
  return APIKeysResponse(api_keys=[_to_info(k) for k in api_keys])


@router.get(
  "/api-keys",
  response_model=APIKeysResponse,
  summary="List My API Keys",
  operation_id="listUserAPIKeys",
)
def list_user_api_keys(
  principal: Principal = Depends(get_session_principal),
  db: Session = Depends(get_db_session),
) -> APIKeysResponse:
  api_keys = ProjectAPIKey.get_by_user(principal.user_id, db)
  return APIKeysResponse(api_keys=[_to_info(k) for k in api_keys])


@router.get(
  "/api-keys/{key_id}",
  response_model=APIKeyInfo,
  summary="Get API Key",
  operation_id="getAPIKey",
  responses={404: {"model": ErrorResponse}},
)
def get_api_key(
  key_id: str,
  principal: Principal = Depends(get_session_principal),
  services: ServiceContainer = Depends(get_services),
  db: Session = Depends(get_db_session),
) -> APIKeyInfo:
  return _to_info(services.api_keys.get_for_user(key_id, principal.user_id, db))


@router.patch(
  "/api-keys/{key_id}/revoke",
  response_model=SuccessResponse,
  summary="Revoke API Key",
  description="Revoke a key. Revoking an already revoked key returns 404.",
  operation_id="revokeAPIKey",
  responses={404: {"model": ErrorResponse}},
)
def revoke_api_key(
  key_id: str,
  principal: Principal = Depends(get_session_principal),
  services: ServiceContainer = Depends(get_services),
  db: Session = Depends(get_db_session),
) -> SuccessResponse:
  services.api_keys.revoke(key_id, principal.user_id, db)
  return SuccessResponse(message="API key revoked successfully", data={"key_id": key_id})


@router.delete(
  "/api-keys/{key_id}",
  response_model=SuccessResponse,
  summary="Delete API Key",
  operation_id="deleteAPIKey",
  responses={404: {"model": ErrorResponse}},
)
def delete_api_key(
  key_id: str,
  principal: Principal = Depends(get_session_principal),
  services: ServiceContainer = Depends(get_services),
  db: Session = Depends(get_db_session),
) -> SuccessResponse:
  services.api_keys.delete(key_id, principal.user_id, db)
  return SuccessResponse(message="API key deleted successfully", data={"key_id": key_id})
