"""Session token utilities.

Session tokens are HS256 JWTs with ``{sub: user_id, username, iat, exp}``.
They are minted by the identity service in front of this one (or by the
admin CLI for development) and only verified here.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from pydantic import BaseModel, ValidationError as PydanticValidationError

from ...config import env
from ...config.constants import JWT_ALGORITHM
from ...config.logging import get_logger

logger = get_logger("sgs.security.jwt")


class SessionClaims(BaseModel):
  """Decoded session token claims. All fields are required."""

  sub: str
  username: str
  iat: int
  exp: int

  @property
  def user_id(self) -> str:
    return self.sub


class SessionTokenCodec:
  """Encode and verify session tokens."""

  def __init__(self, secret: Optional[str] = None, expiry_hours: Optional[int] = None):
    self.secret = secret or env.JWT_SECRET_KEY
    if not self.secret:
      raise ValueError("JWT_SECRET_KEY must be set")
    self.expiry_hours = expiry_hours or env.JWT_EXPIRY_HOURS

  def create_token(
    self, user_id: str, username: str, expires_in: Optional[timedelta] = None
  ) -> str:
    """Create a session token for ``user_id``."""
    now = datetime.now(timezone.utc)
    payload = {
      "sub": user_id,
      "username": username,
      "iat": now,
      "exp": now + (expires_in or timedelta(hours=self.expiry_hours)),
    }
    return jwt.encode(payload, self.secret, algorithm=JWT_ALGORITHM)

  def verify_token(self, token: str) -> Optional[SessionClaims]:
    """Verify a session token and return its claims if valid.

    Returns None for expired, tampered, or incomplete tokens.
    """
    try:
      payload = jwt.decode(
        token,
        self.secret,
        algorithms=[JWT_ALGORITHM],
        options={"require": ["sub", "exp", "iat"]},
      )
      return SessionClaims.model_validate(payload)
    except jwt.ExpiredSignatureError:
      logger.info("Session token verification failed: token expired")
      return None
    except (jwt.InvalidTokenError, PydanticValidationError) as e:
      logger.info(f"Session token verification failed: {type(e).__name__}")
      return None
