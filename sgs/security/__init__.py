"""
Security utilities for the storage gateway.

- Security audit logging (audit_logger.py)
- Project API keys (api_keys.py)
- Signed download links (signed_urls.py)
"""

from .audit_logger import SecurityAuditLogger, SecurityEventType
from .api_keys import APIKeyService
from .signed_urls import SignedURL, SignedURLClaims, SignedURLService

__all__ = [
  "APIKeyService",
  "SecurityAuditLogger",
  "SecurityEventType",
  "SignedURL",
  "SignedURLClaims",
  "SignedURLService",
]
