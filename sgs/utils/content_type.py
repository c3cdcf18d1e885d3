"""Content type detection for uploaded payloads."""

from typing import BinaryIO, Optional, Tuple

import magic

from sgs.config.constants import CONTENT_SNIFF_BYTES

GENERIC_CONTENT_TYPE = "application/octet-stream"


def detect_content_type(head: bytes, declared: Optional[str] = None) -> str:
  """
  Detect the content type of a payload from its leading bytes.

  The client-declared type is used only when the bytes themselves are
  inconclusive.
  """
  detected = magic.from_buffer(head, mime=True) if head else None
  if detected and detected != GENERIC_CONTENT_TYPE:
    return detected
  if declared:
    return declared
  return detected or GENERIC_CONTENT_TYPE


def sniff_stream(
  stream: BinaryIO, declared: Optional[str] = None
) -> Tuple[str, int]:
  """
  Detect the content type and size of a seekable stream.

  The stream is rewound to its start before returning.
  """
  stream.seek(0)
  head = stream.read(CONTENT_SNIFF_BYTES)
  content_type = detect_content_type(head, declared)
  stream.seek(0, 2)
  size = stream.tell()
  stream.seek(0)
  return content_type, size
