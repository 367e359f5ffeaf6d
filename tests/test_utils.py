"""Tests for digest and timestamp utilities."""

from datetime import datetime, timedelta, timezone

import pytest

from cnb_registry_client.utils.digest import (
    calculate_digest,
    validate_digest,
    verify_digest,
)
from cnb_registry_client.utils.timestamps import format_timestamp, parse_timestamp


class TestDigest:
    """Test digest helpers."""

    def test_calculate_digest(self):
        assert calculate_digest(b"") == (
            "sha256:e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )
        assert calculate_digest(b"x", "sha512").startswith("sha512:")

    def test_calculate_digest_rejects_bad_input(self):
        with pytest.raises(ValueError):
            calculate_digest("not bytes")
        with pytest.raises(ValueError):
            calculate_digest(b"x", "md5")

    def test_validate_digest(self):
        assert validate_digest(calculate_digest(b"data"))
        assert not validate_digest("sha256:abc")
        assert not validate_digest("md5:" + "a" * 32)
        assert not validate_digest("sha256:" + "A" * 64)
        assert not validate_digest(None)

    def test_verify_digest(self):
        digest = calculate_digest(b"data")
        assert verify_digest(b"data", digest)
        assert not verify_digest(b"other", digest)
        with pytest.raises(ValueError):
            verify_digest(b"data", "invalid")


class TestTimestamps:
    """Test RFC 3339 parsing and formatting."""

    def test_parse_nanoseconds(self):
        parsed = parse_timestamp("2019-05-01T12:30:00.123456789Z")
        assert parsed == datetime(2019, 5, 1, 12, 30, 0, 123456, tzinfo=timezone.utc)

    def test_parse_normalizes_to_utc(self):
        parsed = parse_timestamp("2019-05-01T14:30:00+02:00")
        assert parsed == datetime(2019, 5, 1, 12, 30, tzinfo=timezone.utc)
        assert parsed.utcoffset() == timedelta(0)

    def test_parse_short_fraction(self):
        assert parse_timestamp("2019-05-01T12:30:00.5Z").microsecond == 500000

    @pytest.mark.parametrize("value", ["", "yesterday", None])
    def test_parse_invalid(self, value):
        with pytest.raises(ValueError):
            parse_timestamp(value)

    def test_format(self):
        value = datetime(2020, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert format_timestamp(value) == "2020-01-02T03:04:05Z"
        assert parse_timestamp(format_timestamp(value)) == value
