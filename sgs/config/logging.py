"""
Structured logging configuration for the storage gateway.

Logs are emitted as single-line JSON in deployed environments so they can be
filtered by component, action, and request id. Local development keeps a
plain human-readable format.

Logger hierarchy:
- sgs            general application logger
- sgs.api        request/response logging
- sgs.security   authentication and capability audit trail
- sgs.saga       cross-store operations and compensation
"""

import json
import logging
import logging.config
import traceback
from datetime import datetime, timezone
from typing import Any

from sgs.config.env import EnvConfig

APPLICATION_LOGGERS = ("sgs", "sgs.api", "sgs.security", "sgs.saga")


class StructuredFormatter(logging.Formatter):
  """
  JSON formatter with consistent, searchable field names.

  Fields passed through ``extra`` (component, action, user_id, project_id,
  file_id, request_id, duration_ms, status_code, metadata) are lifted into
  the top-level object when present.
  """

  PASSTHROUGH_FIELDS = (
    "action",
    "user_id",
    "project_id",
    "file_id",
    "bucket",
    "object_name",
    "duration_ms",
    "status_code",
    "request_id",
  )

  def format(self, record: logging.LogRecord) -> str:
    log_entry = {
      "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
      "level": record.levelname,
      "component": getattr(record, "component", record.name),
      "message": record.getMessage(),
    }

    for field in self.PASSTHROUGH_FIELDS:
      value = getattr(record, field, None)
      if value is not None:
        log_entry[field] = value

    if record.levelno >= logging.ERROR:
      if record.exc_info:
        log_entry["error"] = {
          "type": record.exc_info[0].__name__ if record.exc_info[0] else "Unknown",
          "message": str(record.exc_info[1]) if record.exc_info[1] else "",
          "traceback": traceback.format_exception(*record.exc_info),
        }

      if hasattr(record, "error_category"):
        log_entry["error_category"] = record.error_category

    if hasattr(record, "metadata"):
      log_entry["metadata"] = record.metadata

    return json.dumps(log_entry, default=str, separators=(",", ":"))


def get_logging_config(environment: str | None = None) -> dict[str, Any]:
  """
  Generate logging configuration based on environment.

  - prod/staging: INFO level, structured output
  - test: WARNING level, minimal output for clean test runs
  - dev: LOG_LEVEL (DEBUG by default), plain console output
  """
  env = environment or EnvConfig.ENVIRONMENT

  if env in ("prod", "staging"):
    default_level = EnvConfig.LOG_LEVEL or "INFO"
  elif env == "test":
    default_level = "WARNING"
  else:
    default_level = EnvConfig.LOG_LEVEL or "DEBUG"

  handlers = ["console"] if env == "dev" else ["structured"]

  config: dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
      "structured": {
        "()": StructuredFormatter,
      },
      "simple": {"format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"},
    },
    "handlers": {
      "structured": {
        "class": "logging.StreamHandler",
        "level": "DEBUG",
        "formatter": "structured",
        "stream": "ext://sys.stdout",
      },
      "console": {
        "class": "logging.StreamHandler",
        "level": "DEBUG",
        "formatter": "simple",
        "stream": "ext://sys.stdout",
      },
    },
    "loggers": {
      # Third-party loggers (reduced verbosity)
      "uvicorn": {"level": "WARNING", "handlers": handlers, "propagate": False},
      "sqlalchemy": {"level": "WARNING", "handlers": handlers, "propagate": False},
      "boto3": {"level": "WARNING", "handlers": handlers, "propagate": False},
      "botocore": {"level": "WARNING", "handlers": handlers, "propagate": False},
    },
    "root": {
      "level": "WARNING",
      "handlers": handlers,
    },
  }

  for name in APPLICATION_LOGGERS:
    # Child loggers propagate to "sgs" so each record is emitted once
    config["loggers"][name] = {"level": default_level}
  config["loggers"]["sgs"].update({"handlers": handlers, "propagate": False})

  return config


def setup_logging(environment: str | None = None) -> None:
  """Initialize structured logging configuration."""
  config = get_logging_config(environment)
  logging.config.dictConfig(config)


def get_logger(name: str) -> logging.Logger:
  """Get a logger with structured logging capabilities."""
  return logging.getLogger(name)


def log_api_request(
  logger: logging.Logger,
  method: str,
  path: str,
  status_code: int,
  duration_ms: float,
  user_id: str | None = None,
  project_id: str | None = None,
  request_id: str | None = None,
) -> None:
  """Log API request with structured data."""
  logger.info(
    f"{method} {path} - {status_code} ({duration_ms:.2f}ms)",
    extra={
      "component": "api",
      "action": "request_completed",
      "status_code": status_code,
      "duration_ms": round(duration_ms, 2),
      "user_id": user_id,
      "project_id": project_id,
      "request_id": request_id,
    },
  )


def log_error(
  logger: logging.Logger,
  error: Exception,
  component: str,
  action: str,
  error_category: str = "application",
  user_id: str | None = None,
  metadata: dict[str, Any] | None = None,
) -> None:
  """Log error with structured data for easy searching."""
  logger.error(
    f"Error in {component}.{action}: {error!s}",
    exc_info=True,
    extra={
      "component": component,
      "action": action,
      "error_category": error_category,
      "user_id": user_id,
      "metadata": metadata or {},
    },
  )
