from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
  return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
  """Attach UTC to naive datetimes read back from stores without tz support."""
  if value is None:
    return None
  if value.tzinfo is None:
    return value.replace(tzinfo=timezone.utc)
  return value.astimezone(timezone.utc)
