"""
Project API keys.

Keys have the form ``{prefix}_{secret}`` where the secret is 32 random bytes,
URL-safe base64 encoded. Only a bcrypt hash is persisted, alongside the
token's first characters so validation only hashes against keys that share
them. Every validation failure raises the same ``AuthenticationError``.
"""

import secrets
from datetime import datetime, timedelta
from typing import Optional, Sequence, Tuple

import bcrypt
from sqlalchemy.orm import Session

from ..config import env
from ..config.constants import API_KEY_LOOKUP_LENGTH, API_KEY_SECRET_BYTES
from ..exceptions import (
  APIKeyNotFoundError,
  AuthenticationError,
  ExpiryWindowError,
  ForbiddenError,
  ProjectNotFoundError,
  ValidationError,
)
from ..logger import logger
from ..models.iam import Project, ProjectAPIKey
from ..utils.timestamps import as_utc, utc_now
from .audit_logger import SecurityAuditLogger, SecurityEventType


class APIKeyService:
  """Issues, validates, revokes and deletes project API keys."""

  def __init__(
    self,
    prefix: Optional[str] = None,
    hash_rounds: Optional[int] = None,
    min_lifetime: Optional[timedelta] = None,
    max_lifetime: Optional[timedelta] = None,
  ):
    self.prefix = prefix or env.API_KEY_PREFIX
    self.hash_rounds = hash_rounds or env.API_KEY_HASH_ROUNDS
    self.min_lifetime = (
      min_lifetime
      if min_lifetime is not None
      else timedelta(hours=env.API_KEY_MIN_LIFETIME_HOURS)
    )
    self.max_lifetime = (
      max_lifetime
      if max_lifetime is not None
      else timedelta(days=env.API_KEY_MAX_LIFETIME_DAYS)
    )
    self._placeholder: Optional[str] = None

  # ------------------------------------------------------------------
  # Token material
  # ------------------------------------------------------------------

  def generate_key(self) -> str:
    return f"{self.prefix}_{secrets.token_urlsafe(API_KEY_SECRET_BYTES)}"

  @staticmethod
  def lookup_prefix(token: str) -> str:
    return token[:API_KEY_LOOKUP_LENGTH]

  def _hash_api_key(self, token: str) -> str:
    return bcrypt.hashpw(
      token.encode("utf-8"), bcrypt.gensalt(rounds=self.hash_rounds)
    ).decode("utf-8")

  def _placeholder_hash(self) -> str:
    if self._placeholder is None:
      self._placeholder = self._hash_api_key(secrets.token_urlsafe(API_KEY_SECRET_BYTES))
    return self._placeholder

  @staticmethod
  def _verify_api_key(token: str, key_hash: str) -> bool:
    # bcrypt.checkpw compares in constant time
    try:
      return bcrypt.checkpw(token.encode("utf-8"), key_hash.encode("utf-8"))
    except ValueError:
      return False

  def _looks_like_key(self, token: Optional[str]) -> bool:
    return (
      isinstance(token, str)
      and token.startswith(f"{self.prefix}_")
      and len(token) > API_KEY_LOOKUP_LENGTH
    )

  # ------------------------------------------------------------------
  # Issuance
  # ------------------------------------------------------------------

  def validate_expiry(self, expires_at: datetime, now: Optional[datetime] = None) -> datetime:
    """Normalize ``expires_at`` to UTC and check it against the lifetime window."""
    now = now or utc_now()
    expires_at = as_utc(expires_at)
    if expires_at - now < self.min_lifetime:
      raise ExpiryWindowError(
        f"API key must be valid for at least {self.min_lifetime}", expires_at
      )
    if expires_at - now > self.max_lifetime:
      raise ExpiryWindowError(
        f"API key cannot be valid for more than {self.max_lifetime.days} days",
        expires_at,
      )
    return expires_at

  def issue(
    self,
    project_id: str,
    user_id: str,
    name: str,
    expires_at: datetime,
    session: Session,
  ) -> Tuple[ProjectAPIKey, str]:
    """
    Create a key bound to ``project_id``.

    Returns:
        tuple: (ProjectAPIKey record, plain text key). The plain key is not
        recoverable afterwards.
    """
    name = (name or "").strip()
    if not name:
      raise ValidationError("API key name is required", field="name")
    expires_at = self.validate_expiry(expires_at)

    project = Project.get_by_id(project_id, session)
    if project is None:
      raise ProjectNotFoundError(project_id)
    if not project.is_owned_by(user_id):
      SecurityAuditLogger.log_authorization_denied(
        user_id=user_id, resource=f"project:{project_id}", action="issue_api_key"
      )
      raise ForbiddenError("Only the project owner can issue API keys")

    plain_key = self.generate_key()
    api_key = ProjectAPIKey.create(
      name=name,
      project_id=project_id,
      user_id=user_id,
      key_hash=self._hash_api_key(plain_key),
      lookup_prefix=self.lookup_prefix(plain_key),
      expires_at=expires_at,
      session=session,
    )

    SecurityAuditLogger.log_security_event(
      event_type=SecurityEventType.API_KEY_CREATED,
      user_id=user_id,
      details={
        "api_key_id": api_key.id,
        "project_id": project_id,
        "key_prefix": api_key.lookup_prefix,
        "expires_at": expires_at.isoformat(),
      },
      risk_level="low",
    )
    return api_key, plain_key

  # ------------------------------------------------------------------
  # Validation
  # ------------------------------------------------------------------

  def authenticate(self, token: Optional[str], session: Session) -> ProjectAPIKey:
    """
    Resolve a presented key to its record.

    Raises:
        AuthenticationError: for unknown, malformed, expired or revoked keys
            alike.
    """
    if not self._looks_like_key(token):
      SecurityAuditLogger.log_auth_failure("malformed_api_key", auth_method="api_key")
      raise AuthenticationError()

    prefix = self.lookup_prefix(token)
    candidates = ProjectAPIKey.get_candidates(prefix, session)

    # Hash against every candidate, or a stand-in when there are none, so
    # unknown and valid keys cost the same
    matched = None
    for api_key in candidates:
      if self._verify_api_key(token, str(api_key.key_hash)) and matched is None:
        matched = api_key
    if not candidates:
      self._verify_api_key(token, self._placeholder_hash())

    if matched is not None:
      if not matched.is_valid():
        reason = "api_key_revoked" if matched.revoked_at else "api_key_expired"
        SecurityAuditLogger.log_security_event(
          event_type=SecurityEventType.API_KEY_INVALID,
          user_id=matched.user_id,
          details={"api_key_id": matched.id, "reason": reason},
          risk_level="medium",
        )
        raise AuthenticationError()

      matched.update_last_used(session)
      SecurityAuditLogger.log_auth_success(matched.user_id, auth_method="api_key")
      return matched

    SecurityAuditLogger.log_security_event(
      event_type=SecurityEventType.API_KEY_INVALID,
      details={
        "reason": "api_key_unknown",
        "key_prefix": prefix,
        "attempted_keys_checked": len(candidates),
      },
      risk_level="medium",
    )
    raise AuthenticationError()

  # ------------------------------------------------------------------
  # Lifecycle
  # ------------------------------------------------------------------

  def revoke(self, key_id: str, user_id: str, session: Session) -> None:
    """
    Revoke a key. A second revoke, or a key owned by someone else, affects
    no rows and raises APIKeyNotFoundError.
    """
    if ProjectAPIKey.revoke(key_id, user_id, session) == 0:
      raise APIKeyNotFoundError(key_id)
    logger.info(f"API key {key_id} revoked by {user_id}")
    SecurityAuditLogger.log_security_event(
      event_type=SecurityEventType.API_KEY_REVOKED,
      user_id=user_id,
      details={"api_key_id": key_id},
      risk_level="low",
    )

  def delete(self, key_id: str, user_id: str, session: Session) -> None:
    if ProjectAPIKey.delete_for_user(key_id, user_id, session) == 0:
      raise APIKeyNotFoundError(key_id)
    SecurityAuditLogger.log_security_event(
      event_type=SecurityEventType.API_KEY_DELETED,
      user_id=user_id,
      details={"api_key_id": key_id},
      risk_level="low",
    )

  def get_for_user(self, key_id: str, user_id: str, session: Session) -> ProjectAPIKey:
    api_key = ProjectAPIKey.get_by_id_for_user(key_id, user_id, session)
    if api_key is None:
      raise APIKeyNotFoundError(key_id)
    return api_key

  def list_for_project(
    self, project_id: str, user_id: str, session: Session
  ) -> Sequence[ProjectAPIKey]:
    project = Project.get_by_id(project_id, session)
    if project is None:
      raise ProjectNotFoundError(project_id)
    if not project.is_owned_by(user_id):
      raise ForbiddenError("Only the project owner can list its API keys")
    return ProjectAPIKey.get_by_project(project_id, session)
