"""
Signed download links.

A signed link is a stateless HS256 token carrying ``{sub: file_id, bucket,
iat, exp}``. There is no revocation list: a leaked link stays usable until
``exp``, and short lifetimes are the only mitigation. The lifetime floor is
enforced at issuance so no token is minted for an expiry in the past or
inside the minimum window.
"""

from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import urlencode

import jwt
from pydantic import BaseModel, ValidationError as PydanticValidationError

from ..config import env
from ..config.constants import JWT_ALGORITHM, SIGNED_URL_DOWNLOAD_PATH
from ..exceptions import AuthenticationError, ExpiryWindowError
from ..logger import logger
from ..utils.timestamps import as_utc, utc_now
from .audit_logger import SecurityAuditLogger, SecurityEventType


class SignedURLClaims(BaseModel):
  """Decoded signed-link claims. All fields are required."""

  sub: str
  bucket: str
  iat: int
  exp: int

  @property
  def file_id(self) -> str:
    return self.sub


class SignedURL(BaseModel):
  token: str
  url: str
  expires_at: datetime


class SignedURLService:
  def __init__(
    self,
    secret: Optional[str] = None,
    base_url: Optional[str] = None,
    min_lifetime: Optional[timedelta] = None,
    max_lifetime: Optional[timedelta] = None,
  ):
    self.secret = secret or env.SIGNED_URL_SECRET_KEY
    if not self.secret:
      raise ValueError("SIGNED_URL_SECRET_KEY (or JWT_SECRET_KEY) must be set")
    self.base_url = (base_url or env.BASE_URL).rstrip("/")
    self.min_lifetime = (
      min_lifetime
      if min_lifetime is not None
      else timedelta(minutes=env.SIGNED_URL_MIN_LIFETIME_MINUTES)
    )
    if max_lifetime is None and env.SIGNED_URL_MAX_LIFETIME_HOURS > 0:
      max_lifetime = timedelta(hours=env.SIGNED_URL_MAX_LIFETIME_HOURS)
    # None means no upper bound
    self.max_lifetime = max_lifetime

  def validate_expiry(self, expires_at: datetime, now: Optional[datetime] = None) -> datetime:
    now = now or utc_now()
    expires_at = as_utc(expires_at)
    if expires_at <= now:
      raise ExpiryWindowError("Expiry time is in the past", expires_at)
    if expires_at - now < self.min_lifetime:
      raise ExpiryWindowError(
        f"Expiry time must be at least {self.min_lifetime} from now", expires_at
      )
    if self.max_lifetime is not None and expires_at - now > self.max_lifetime:
      raise ExpiryWindowError(
        f"Expiry time cannot be more than {self.max_lifetime} from now", expires_at
      )
    return expires_at

  def issue(
    self, file_id: str, bucket: str, expires_at: datetime, now: Optional[datetime] = None
  ) -> SignedURL:
    now = now or utc_now()
    expires_at = self.validate_expiry(expires_at, now)
    payload = {
      "sub": file_id,
      "bucket": bucket,
      "iat": int(now.timestamp()),
      "exp": int(expires_at.timestamp()),
    }
    token = jwt.encode(payload, self.secret, algorithm=JWT_ALGORITHM)
    url = f"{self.base_url}{SIGNED_URL_DOWNLOAD_PATH}?{urlencode({'token': token})}"
    return SignedURL(token=token, url=url, expires_at=expires_at)

  def verify(self, token: Optional[str]) -> SignedURLClaims:
    """Check signature and expiry, then decode into typed claims."""
    if not token:
      raise self._reject("missing")
    try:
      payload = jwt.decode(
        token,
        self.secret,
        algorithms=[JWT_ALGORITHM],
        options={"require": ["sub", "exp", "iat"]},
      )
      return SignedURLClaims.model_validate(payload)
    except jwt.ExpiredSignatureError:
      raise self._reject("expired")
    except (jwt.InvalidTokenError, PydanticValidationError) as e:
      raise self._reject(type(e).__name__)

  @staticmethod
  def _reject(reason: str) -> AuthenticationError:
    logger.info(f"Signed link rejected: {reason}")
    SecurityAuditLogger.log_security_event(
      event_type=SecurityEventType.SIGNED_URL_REJECTED,
      endpoint=SIGNED_URL_DOWNLOAD_PATH,
      details={"reason": reason},
      risk_level="medium",
    )
    return AuthenticationError("Invalid or expired link")
