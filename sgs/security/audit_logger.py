"""
Security Audit Logger

Structured audit trail for authentication, authorization and capability
token events. Raw secrets are never logged; at most a short key prefix.
"""

from typing import Optional, Dict, Any
from enum import Enum

from ..config import env
from ..logger import security_logger


class SecurityEventType(Enum):
  """Security event types for audit logging."""

  AUTH_FAILURE = "auth_failure"
  AUTH_SUCCESS = "auth_success"
  AUTH_TOKEN_INVALID = "auth_token_invalid"
  API_KEY_INVALID = "api_key_invalid"
  API_KEY_CREATED = "api_key_created"
  API_KEY_REVOKED = "api_key_revoked"
  API_KEY_DELETED = "api_key_deleted"
  AUTHORIZATION_DENIED = "authorization_denied"
  SIGNED_URL_ISSUED = "signed_url_issued"
  SIGNED_URL_REJECTED = "signed_url_rejected"


class SecurityAuditLogger:
  """Centralized security audit logging."""

  @staticmethod
  def log_security_event(
    event_type: SecurityEventType,
    user_id: Optional[str] = None,
    ip_address: Optional[str] = None,
    endpoint: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    risk_level: str = "medium",
  ):
    """
    Log a security event with structured data.

    Args:
        event_type: Type of security event
        user_id: User identifier (if available)
        ip_address: Client IP address
        endpoint: API endpoint accessed
        details: Additional event details
        risk_level: Risk level (low, medium, high, critical)
    """
    if not env.SECURITY_AUDIT_ENABLED:
      return

    level_method = (
      security_logger.info if risk_level == "low" else security_logger.warning
    )
    level_method(
      f"SECURITY_AUDIT: {event_type.value}",
      extra={
        "component": "security",
        "action": event_type.value,
        "user_id": user_id,
        "metadata": {
          "risk_level": risk_level,
          "ip_address": ip_address,
          "endpoint": endpoint,
          **(details or {}),
        },
      },
    )

  @staticmethod
  def log_auth_failure(
    reason: str,
    ip_address: Optional[str] = None,
    endpoint: Optional[str] = None,
    auth_method: Optional[str] = None,
  ):
    """Log authentication failure. ``reason`` is internal only."""
    SecurityAuditLogger.log_security_event(
      event_type=SecurityEventType.AUTH_FAILURE,
      ip_address=ip_address,
      endpoint=endpoint,
      details={"failure_reason": reason, "auth_method": auth_method},
      risk_level="high",
    )

  @staticmethod
  def log_auth_success(
    user_id: str,
    ip_address: Optional[str] = None,
    auth_method: str = "api_key",
  ):
    """Log successful authentication."""
    SecurityAuditLogger.log_security_event(
      event_type=SecurityEventType.AUTH_SUCCESS,
      user_id=user_id,
      ip_address=ip_address,
      details={"auth_method": auth_method},
      risk_level="low",
    )

  @staticmethod
  def log_authorization_denied(
    user_id: str,
    resource: str,
    action: str,
    ip_address: Optional[str] = None,
    endpoint: Optional[str] = None,
  ):
    """Log authorization denial."""
    SecurityAuditLogger.log_security_event(
      event_type=SecurityEventType.AUTHORIZATION_DENIED,
      user_id=user_id,
      ip_address=ip_address,
      endpoint=endpoint,
      details={"resource": resource, "action": action},
      risk_level="medium",
    )
