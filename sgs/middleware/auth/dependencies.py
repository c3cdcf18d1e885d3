"""
Authentication dependencies for FastAPI.

Every protected route resolves a ``Principal`` here before its handler runs.
Two schemes are accepted, one per request:

- ``Authorization: Bearer <session token>``
- ``X-API-Key: <project API key>``, only on routes with a ``{project_id}``
  path parameter equal to the key's project

Security Note:
- Authentication failures all return the same 401 body
- Never log presented credentials; at most the key lookup prefix
"""

from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, Request, Security
from fastapi.security import APIKeyHeader
from sqlalchemy.orm import Session

from ...database import get_db_session
from ...exceptions import AuthenticationError, ForbiddenError
from ...models.iam import User
from ...security import SecurityAuditLogger, SecurityEventType
from ...services import ServiceContainer

API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)

AUTH_METHOD_SESSION = "session"
AUTH_METHOD_API_KEY = "api_key"


@dataclass
class Principal:
  """The acting identity for a request."""

  user_id: str
  auth_method: str
  username: Optional[str] = None
  api_key_id: Optional[str] = None
  project_id: Optional[str] = None
  api_key_token: Optional[str] = field(default=None, repr=False)

  @property
  def is_api_key(self) -> bool:
    return self.auth_method == AUTH_METHOD_API_KEY


def get_services(request: Request) -> ServiceContainer:
  return request.app.state.services


def _bearer_token(request: Request) -> Optional[str]:
  authorization = request.headers.get("authorization")
  if authorization and authorization.startswith("Bearer "):
    return authorization[7:].strip() or None
  return None


def _client_ip(request: Request) -> Optional[str]:
  return request.client.host if request.client else None


def _authenticate_session(
  request: Request, token: str, services: ServiceContainer, db: Session
) -> Principal:
  claims = services.session_tokens.verify_token(token)
  user = User.get_by_id(claims.user_id, db) if claims else None
  if user is None:
    SecurityAuditLogger.log_security_event(
      event_type=SecurityEventType.AUTH_TOKEN_INVALID,
      ip_address=_client_ip(request),
      endpoint=request.url.path,
      details={"token_type": "session"},
      risk_level="high",
    )
    raise AuthenticationError()

  SecurityAuditLogger.log_auth_success(
    user_id=user.id, ip_address=_client_ip(request), auth_method=AUTH_METHOD_SESSION
  )
  return Principal(
    user_id=user.id, username=user.username, auth_method=AUTH_METHOD_SESSION
  )


def _authenticate_api_key(
  request: Request, api_key: str, services: ServiceContainer, db: Session
) -> Principal:
  record = services.api_keys.authenticate(api_key, db)

  # Keys only ever address their own project
  path_project_id = request.path_params.get("project_id")
  if path_project_id is None or path_project_id != record.project_id:
    SecurityAuditLogger.log_authorization_denied(
      user_id=record.user_id,
      resource=f"project:{path_project_id}" if path_project_id else request.url.path,
      action="api_key_scope",
      ip_address=_client_ip(request),
      endpoint=request.url.path,
    )
    raise ForbiddenError("API key is not valid for this resource")

  return Principal(
    user_id=record.user_id,
    auth_method=AUTH_METHOD_API_KEY,
    api_key_id=record.id,
    project_id=record.project_id,
    api_key_token=api_key,
  )


def get_current_principal(
  request: Request,
  api_key: Optional[str] = Security(API_KEY_HEADER),
  services: ServiceContainer = Depends(get_services),
  db: Session = Depends(get_db_session),
) -> Principal:
  """
  Resolve the authenticated principal, raising if authentication fails.

  Raises:
      AuthenticationError: missing, invalid, expired or revoked credentials,
          or both schemes presented at once.
      ForbiddenError: a valid API key used outside its project.
  """
  token = _bearer_token(request)

  if token and api_key:
    SecurityAuditLogger.log_auth_failure(
      "multiple_credentials",
      ip_address=_client_ip(request),
      endpoint=request.url.path,
    )
    raise AuthenticationError()

  if token:
    principal = _authenticate_session(request, token, services, db)
  elif api_key:
    principal = _authenticate_api_key(request, api_key, services, db)
  else:
    SecurityAuditLogger.log_auth_failure(
      "no_credentials", ip_address=_client_ip(request), endpoint=request.url.path
    )
    raise AuthenticationError("Authentication required")

  request.state.principal = principal
  return principal


def get_session_principal(
  principal: Principal = Depends(get_current_principal),
) -> Principal:
  """Like get_current_principal, but refuses API keys."""
  if principal.is_api_key:
    raise ForbiddenError("This operation requires a user session")
  return principal
