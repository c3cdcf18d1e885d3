"""Tests for prefixed ULID identifiers."""

import time

from ulid import ULID

from sgs.utils.ulid import generate_prefixed_ulid


class TestGeneratePrefixedUlid:
  def test_format(self):
    value = generate_prefixed_ulid("fil")
    prefix, _, body = value.partition("_")

    assert prefix == "fil"
    assert len(body) == 26
    assert body.isalnum()
    assert body.isupper()
    assert str(ULID.from_str(body)) == body

  def test_time_ordered(self):
    first = generate_prefixed_ulid("prj")
    time.sleep(0.002)
    assert first < generate_prefixed_ulid("prj")

  def test_unique(self):
    assert len({generate_prefixed_ulid("key") for _ in range(100)}) == 100
