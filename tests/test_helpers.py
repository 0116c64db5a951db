from datetime import datetime, timezone

import pytest

from agentdesk.utils.helpers import parse_timestamp, truncate_string


def test_parse_timestamp_accepts_utc_suffix():
    assert parse_timestamp("2025-03-07T09:05:30.000Z") == datetime(2025, 3, 7, 9, 5, 30, tzinfo=timezone.utc)


def test_parse_timestamp_truncates_nanoseconds():
    parsed = parse_timestamp("2025-03-07T09:05:00.123456789Z")
    assert parsed == datetime(2025, 3, 7, 9, 5, 0, 123456, tzinfo=timezone.utc)


def test_parse_timestamp_pads_short_fractions():
    assert parse_timestamp("2025-03-07T09:05:00.5").microsecond == 500000


def test_parse_timestamp_rejects_garbage():
    with pytest.raises(ValueError):
        parse_timestamp("yesterday")


def test_truncate_string():
    assert truncate_string("short") == "short"
    assert truncate_string("abcdefgh", max_len=5) == "ab..."
