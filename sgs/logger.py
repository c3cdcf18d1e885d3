"""
Unified logging interface for the storage gateway.

Initializes structured logging on import and exposes the component loggers
used across the service.
"""

import logging
from typing import Optional, Dict, Any

from .config import env
from .config.logging import (
  setup_logging,
  get_logger,
  log_api_request,
  log_error,
)

setup_logging()

logger = get_logger("sgs")

if env.is_development():
  # Suppress noisy AWS/HTTP client loggers in development
  logging.getLogger("boto3").setLevel(logging.WARNING)
  logging.getLogger("botocore").setLevel(logging.WARNING)
  logging.getLogger("urllib3").setLevel(logging.WARNING)
  logging.getLogger("httpx").setLevel(logging.WARNING)

api_logger = get_logger("sgs.api")
security_logger = get_logger("sgs.security")
saga_logger = get_logger("sgs.saga")


def log_api(
  method: str,
  path: str,
  status_code: int,
  duration_ms: float,
  user_id: Optional[str] = None,
  project_id: Optional[str] = None,
  request_id: Optional[str] = None,
) -> None:
  """Log API requests with structured data."""
  log_api_request(
    api_logger, method, path, status_code, duration_ms, user_id, project_id, request_id
  )


def log_app_error(
  error: Exception,
  component: str,
  action: str,
  error_category: str = "application",
  user_id: Optional[str] = None,
  metadata: Optional[Dict[str, Any]] = None,
) -> None:
  """Log application errors with context."""
  log_error(logger, error, component, action, error_category, user_id, metadata)


__all__ = [
  "logger",
  "api_logger",
  "security_logger",
  "saga_logger",
  "log_api",
  "log_app_error",
  "log_api_request",
  "log_error",
  "get_logger",
]
