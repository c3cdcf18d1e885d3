"""
ULID (Universally Unique Lexicographically Sortable Identifier) utilities.

Record identifiers are prefixed ULIDs: time-ordered, so primary key indexes
stay append-mostly, and the prefix identifies the record type at a glance.
"""

from ulid import ULID


def generate_prefixed_ulid(prefix: str) -> str:
  """
  Generate a prefixed ULID for better readability and type identification.

  Args:
      prefix: A short prefix to identify the record type

  Returns:
      A prefixed ULID string.
      Example: "prj_01ARZ3NDEKTSV4RRFFQ69G5FAV"
  """
  return f"{prefix}_{ULID()}"
