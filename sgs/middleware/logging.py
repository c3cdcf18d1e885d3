"""
Logging middleware for structured API request logging.

Signed download links carry their token in the query string, so query
strings are always redacted before they reach a log line.
"""

import time
import uuid
from typing import Callable, Optional
from urllib.parse import parse_qsl, urlencode

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from sgs.logger import log_api, log_app_error

# Sensitive query parameters that should always be redacted in logs
SENSITIVE_QUERY_PARAMS = {
  "token",
  "api_key",
  "apikey",
  "api-key",
  "authorization",
  "auth",
  "secret",
  "jwt",
  "access_token",
}


def redact_sensitive_query_params(query_string: str) -> str:
  """
  Redact sensitive query parameters from a query string for safe logging.

  Args:
      query_string: The raw query string from a URL

  Returns:
      Query string with sensitive values replaced with REDACTED
  """
  if not query_string:
    return ""

  qs_pairs = parse_qsl(query_string, keep_blank_values=True)
  redacted_pairs = [
    (k, "REDACTED" if k.lower() in SENSITIVE_QUERY_PARAMS else v) for k, v in qs_pairs
  ]
  return urlencode(redacted_pairs)


def get_safe_url_for_logging(request: Request) -> str:
  """URL path plus redacted query string."""
  path = request.url.path
  if request.url.query:
    safe_query = redact_sensitive_query_params(str(request.url.query))
    if safe_query:
      return f"{path}?{safe_query}"
  return path


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
  """
  Logs every API request with timing, principal, and a request ID.

  The request ID is echoed back in the ``X-Request-ID`` response header.
  """

  def __init__(self, app, exclude_paths: Optional[list] = None):
    super().__init__(app)
    self.exclude_paths = exclude_paths or [
      "/v1/status",
      "/favicon.ico",
      "/docs",
      "/redoc",
      "/openapi.json",
    ]

  async def dispatch(self, request: Request, call_next: Callable) -> Response:
    if any(request.url.path.startswith(path) for path in self.exclude_paths):
      return await call_next(request)

    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    start_time = time.time()

    try:
      response = await call_next(request)
    except Exception as e:
      duration_ms = (time.time() - start_time) * 1000
      log_app_error(
        error=e,
        component="api_middleware",
        action="request_processing",
        metadata={
          "method": request.method,
          "path": get_safe_url_for_logging(request),
          "duration_ms": duration_ms,
          "request_id": request_id,
        },
      )
      raise

    duration_ms = (time.time() - start_time) * 1000
    principal = getattr(request.state, "principal", None)
    log_api(
      method=request.method,
      path=get_safe_url_for_logging(request),
      status_code=response.status_code,
      duration_ms=duration_ms,
      user_id=principal.user_id if principal else None,
      project_id=request.path_params.get("project_id")
      if hasattr(request, "path_params")
      else None,
      request_id=request_id,
    )

    response.headers["X-Request-ID"] = request_id
    return response
