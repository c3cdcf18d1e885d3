"""Utility helpers."""

from .content_type import detect_content_type, sniff_stream
from .ulid import generate_prefixed_ulid

__all__ = [
  "detect_content_type",
  "sniff_stream",
  "generate_prefixed_ulid",
]
