"""
Tests for signed download links.

Links are stateless: they cannot be revoked and stay valid until they expire,
so the lifetime checks at issuance are the only control.
"""

import logging
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import jwt
import pytest

from sgs.exceptions import AuthenticationError, ExpiryWindowError
from sgs.security.signed_urls import SignedURLService

SECRET = "signed-url-test-secret-0123456789"
NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def service():
  return SignedURLService(secret=SECRET, base_url="https://files.example.com/")


class TestIssue:
  def test_issue_embeds_token_in_url(self, service):
    link = service.issue("fil_1", "proj-abc", NOW + timedelta(hours=1), now=NOW)

    parsed = urlparse(link.url)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == (
      "https://files.example.com/v1/files/download-signed"
    )
    assert parse_qs(parsed.query)["token"] == [link.token]
    assert link.expires_at == NOW + timedelta(hours=1)

  def test_claims(self, service):
    link = service.issue("fil_1", "proj-abc", NOW + timedelta(hours=1), now=NOW)

    payload = jwt.decode(
      link.token, SECRET, algorithms=["HS256"], options={"verify_exp": False}
    )
    assert payload == {
      "sub": "fil_1",
      "bucket": "proj-abc",
      "iat": int(NOW.timestamp()),
      "exp": int((NOW + timedelta(hours=1)).timestamp()),
    }

  @pytest.mark.parametrize(
    "offset,message",
    [
      (timedelta(minutes=-1), "Expiry time is in the past"),
      (timedelta(0), "Expiry time is in the past"),
      (timedelta(minutes=4, seconds=59), "at least"),
    ],
    ids=["past", "now", "inside-minimum-window"],
  )
  def test_rejects_short_lifetimes(self, service, offset, message):
    with pytest.raises(ExpiryWindowError) as exc_info:
      service.issue("fil_1", "proj-abc", NOW + offset, now=NOW)
    assert message in exc_info.value.message
    assert exc_info.value.status_code == 422

  def test_minimum_window_is_inclusive(self, service):
    link = service.issue("fil_1", "proj-abc", NOW + timedelta(minutes=5), now=NOW)
    assert link.expires_at == NOW + timedelta(minutes=5)

  def test_no_upper_bound_by_default(self, service):
    link = service.issue("fil_1", "proj-abc", NOW + timedelta(days=3650), now=NOW)
    assert link.token

  def test_configured_upper_bound(self):
    service = SignedURLService(secret=SECRET, max_lifetime=timedelta(hours=24))
    with pytest.raises(ExpiryWindowError):
      service.issue("fil_1", "proj-abc", NOW + timedelta(hours=25), now=NOW)

  def test_secret_required(self, monkeypatch):
    from sgs.config import env

    monkeypatch.setattr(env, "SIGNED_URL_SECRET_KEY", "")
    with pytest.raises(ValueError):
      SignedURLService(secret="")


class TestVerify:
  def test_round_trip(self, service):
    link = service.issue("fil_1", "proj-abc", datetime.now(timezone.utc) + timedelta(hours=1))

    claims = service.verify(link.token)

    assert claims.file_id == "fil_1"
    assert claims.bucket == "proj-abc"

  def test_expired_token(self, service):
    past = int((datetime.now(timezone.utc) - timedelta(minutes=1)).timestamp())
    token = jwt.encode(
      {"sub": "fil_1", "bucket": "proj-abc", "iat": past - 600, "exp": past},
      SECRET,
      algorithm="HS256",
    )
    with pytest.raises(AuthenticationError):
      service.verify(token)

  def test_wrong_signature(self, service):
    other = SignedURLService(secret="another-signing-secret-0123456789abcdef")
    link = other.issue("fil_1", "proj-abc", datetime.now(timezone.utc) + timedelta(hours=1))
    with pytest.raises(AuthenticationError):
      service.verify(link.token)

  @pytest.mark.parametrize("missing", ["sub", "bucket", "iat", "exp"])
  def test_missing_claims(self, service, missing):
    now = int(datetime.now(timezone.utc).timestamp())
    claims = {"sub": "fil_1", "bucket": "proj-abc", "iat": now, "exp": now + 3600}
    claims.pop(missing)
    token = jwt.encode(claims, SECRET, algorithm="HS256")

    with pytest.raises(AuthenticationError) as exc_info:
      service.verify(token)
    assert exc_info.value.message == "Invalid or expired link"

  @pytest.mark.parametrize("token", [None, "", "not.a.jwt"])
  def test_garbage(self, service, token):
    with pytest.raises(AuthenticationError):
      service.verify(token)

  def test_algorithm_none_rejected(self, service):
    now = int(datetime.now(timezone.utc).timestamp())
    token = jwt.encode(
      {"sub": "fil_1", "bucket": "proj-abc", "iat": now, "exp": now + 3600},
      None,
      algorithm="none",
    )
    with pytest.raises(AuthenticationError):
      service.verify(token)


class TestRejectionAudit:
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

  def test_expired_link_is_audited(self, service, security_records):
    past = int((datetime.now(timezone.utc) - timedelta(minutes=1)).timestamp())
    token = jwt.encode(
      {"sub": "fil_1", "bucket": "proj-abc", "iat": past - 600, "exp": past},
      SECRET,
      algorithm="HS256",
    )

    with pytest.raises(AuthenticationError):
      service.verify(token)

    record = security_records[-1]
    assert record.action == "signed_url_rejected"
    assert record.metadata["reason"] == "expired"
    assert token not in record.getMessage()

  def test_tampered_link_is_audited(self, service, security_records):
    with pytest.raises(AuthenticationError):
      service.verify("not.a.jwt")

    assert security_records[-1].action == "signed_url_rejected"
    assert security_records[-1].metadata["reason"] == "DecodeError"
