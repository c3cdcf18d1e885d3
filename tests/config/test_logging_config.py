"""Tests for structured logging and the security audit trail."""

import json
import logging
import sys

import pytest

from sgs.config import env
from sgs.config.logging import StructuredFormatter, get_logging_config
from sgs.security import SecurityAuditLogger, SecurityEventType


def _record(level=logging.INFO, msg="hello", exc_info=None, **extra):
  record = logging.LogRecord("sgs.saga", level, __file__, 1, msg, None, exc_info)
  for key, value in extra.items():
    setattr(record, key, value)
  return record


class TestStructuredFormatter:
  def test_passthrough_fields(self):
    entry = json.loads(
      StructuredFormatter().format(
        _record(
          component="saga",
          action="upload_file",
          bucket="proj-abc",
          object_name="proj-abc-1-report.pdf",
          metadata={"task_id": "cmp_1"},
        )
      )
    )

    assert entry["level"] == "INFO"
    assert entry["component"] == "saga"
    assert entry["action"] == "upload_file"
    assert entry["bucket"] == "proj-abc"
    assert entry["object_name"] == "proj-abc-1-report.pdf"
    assert entry["metadata"] == {"task_id": "cmp_1"}
    assert "user_id" not in entry

  def test_component_defaults_to_logger_name(self):
    entry = json.loads(StructuredFormatter().format(_record()))
    assert entry["component"] == "sgs.saga"

  def test_error_info(self):
    try:
      raise RuntimeError("commit lost")
    except RuntimeError:
      record = _record(logging.ERROR, "failed", exc_info=sys.exc_info(), error_category="saga")

    entry = json.loads(StructuredFormatter().format(record))

    assert entry["error"]["type"] == "RuntimeError"
    assert entry["error"]["message"] == "commit lost"
    assert entry["error_category"] == "saga"


class TestLoggingConfig:
  def test_dev_uses_console(self):
    config = get_logging_config("dev")
    assert config["loggers"]["sgs"]["handlers"] == ["console"]

  def test_prod_uses_structured(self):
    config = get_logging_config("prod")
    assert config["loggers"]["sgs"]["handlers"] == ["structured"]
    assert config["loggers"]["sgs"]["propagate"] is False
    # Children propagate to "sgs" only
    assert "handlers" not in config["loggers"]["sgs.saga"]

  def test_test_is_quiet(self):
    assert get_logging_config("test")["loggers"]["sgs"]["level"] == "WARNING"


class TestSecurityAuditLogger:
  @pytest.fixture
  def security_records(self):
    records = []

    class _Handler(logging.Handler):
      def emit(self, record):
        records.append(record)

    handler = _Handler()
    security_logger = logging.getLogger("sgs.security")
    previous = security_logger.level
    security_logger.addHandler(handler)
    security_logger.setLevel(logging.INFO)
    yield records
    security_logger.removeHandler(handler)
    security_logger.setLevel(previous)

  def test_event_fields(self, security_records):
    SecurityAuditLogger.log_authorization_denied(
      user_id="usr_1", resource="project:prj_1", action="api_key_scope"
    )

    record = security_records[-1]
    assert record.levelno == logging.WARNING
    assert record.action == SecurityEventType.AUTHORIZATION_DENIED.value
    assert record.user_id == "usr_1"
    assert record.metadata["resource"] == "project:prj_1"

  def test_low_risk_is_info(self, security_records):
    SecurityAuditLogger.log_auth_success("usr_1", auth_method="session")
    assert security_records[-1].levelno == logging.INFO

  def test_disabled(self, security_records, monkeypatch):
    monkeypatch.setattr(env, "SECURITY_AUDIT_ENABLED", False)
    SecurityAuditLogger.log_auth_failure("no_credentials")
    assert security_records == []
