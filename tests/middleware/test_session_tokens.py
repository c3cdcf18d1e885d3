"""Tests for session token encoding and verification."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from sgs.middleware.auth.jwt import SessionTokenCodec

SECRET = "session-token-test-secret-0123456789"


@pytest.fixture
def codec():
  return SessionTokenCodec(secret=SECRET, expiry_hours=1)


class TestSessionTokenCodec:
  def test_round_trip(self, codec):
    token = codec.create_token("usr_1", "alice")

    claims = codec.verify_token(token)

    assert claims.user_id == "usr_1"
    assert claims.username == "alice"
    assert claims.exp - claims.iat == 3600

  def test_custom_lifetime(self, codec):
    claims = codec.verify_token(codec.create_token("usr_1", "alice", timedelta(minutes=10)))
    assert claims.exp - claims.iat == 600

  def test_expired(self, codec):
    token = codec.create_token("usr_1", "alice", timedelta(seconds=-1))
    assert codec.verify_token(token) is None

  def test_tampered(self, codec):
    token = codec.create_token("usr_1", "alice")
    header, payload, signature = token.split(".")
    flipped = "A" if signature[0] != "A" else "B"
    assert codec.verify_token(f"{header}.{payload}.{flipped}{signature[1:]}") is None

  def test_other_secret(self, codec):
    other = SessionTokenCodec(secret="a-different-session-secret-0123456789")
    assert codec.verify_token(other.create_token("usr_1", "alice")) is None

  @pytest.mark.parametrize("missing", ["sub", "username", "iat", "exp"])
  def test_missing_claims(self, codec, missing):
    now = datetime.now(timezone.utc)
    claims = {
      "sub": "usr_1",
      "username": "alice",
      "iat": now,
      "exp": now + timedelta(hours=1),
    }
    claims.pop(missing)
    assert codec.verify_token(jwt.encode(claims, SECRET, algorithm="HS256")) is None

  def test_secret_required(self, monkeypatch):
    from sgs.config import env

    monkeypatch.setattr(env, "JWT_SECRET_KEY", "")
    with pytest.raises(ValueError):
      SessionTokenCodec(secret="")
