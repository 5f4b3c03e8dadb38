"""Unit tests for timestamp and token utilities."""

from datetime import datetime, timedelta, timezone

import pytest

from jobnotify.utils import format_timestamp, generate_token, parse_timestamp, utc_now


class TestUtcNow:
    def test_returns_aware_utc(self):
        now = utc_now()
        assert now.tzinfo == timezone.utc

    def test_is_recent(self):
        before = datetime.now(timezone.utc)
        now = utc_now()
        after = datetime.now(timezone.utc)
        assert before <= now <= after


class TestFormatTimestamp:
    def test_format(self):
        dt = datetime(2025, 11, 4, 10, 30, tzinfo=timezone.utc)
        assert format_timestamp(dt) == "2025-11-04T10:30:00.000000Z"

    def test_naive_is_treated_as_utc(self):
        assert format_timestamp(datetime(2025, 11, 4, 10, 30)) == "2025-11-04T10:30:00.000000Z"

    def test_converts_other_timezones(self):
        taipei = timezone(timedelta(hours=8))
        dt = datetime(2025, 11, 4, 18, 30, tzinfo=taipei)
        assert format_timestamp(dt) == "2025-11-04T10:30:00.000000Z"

    def test_lexical_order_is_chronological(self):
        earlier = format_timestamp(datetime(2025, 1, 9, 23, 59, tzinfo=timezone.utc))
        later = format_timestamp(datetime(2025, 1, 10, 0, 0, tzinfo=timezone.utc))
        assert earlier < later


class TestParseTimestamp:
    def test_parses_stored_format(self):
        parsed = parse_timestamp("2025-11-04T10:30:00.000000Z")
        assert parsed == datetime(2025, 11, 4, 10, 30, tzinfo=timezone.utc)

    def test_none_and_empty(self):
        assert parse_timestamp(None) is None
        assert parse_timestamp("") is None

    def test_offset_is_normalized(self):
        parsed = parse_timestamp("2025-11-04T18:30:00+08:00")
        assert parsed == datetime(2025, 11, 4, 10, 30, tzinfo=timezone.utc)


class TestGenerateToken:
    def test_tokens_are_url_safe_and_distinct(self):
        tokens = {generate_token() for _ in range(100)}
        assert len(tokens) == 100
        assert all("/" not in t and "+" not in t for t in tokens)

    def test_rejects_low_entropy(self):
        with pytest.raises(ValueError):
            generate_token(4)
