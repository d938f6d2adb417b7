"""Tests for small helpers."""

from datetime import datetime, timezone

import pytest

from octane_bridge.shared.utils import (
    extract_workflow_file_name,
    from_epoch_millis,
    is_version_greater_or_equal,
    parse_timestamp,
    to_epoch_millis,
)


class TestVersions:
    @pytest.mark.parametrize("version1,version2,expected", [
        ("25.1.4", "25.1.4", True),
        ("25.1.12", "25.1.4", True),
        ("25.1.3", "25.1.4", False),
        ("25.2", "25.1.12", True),
        ("24.4.1", "25.1.4", False),
        ("25.1.4.100", "25.1.4", True),
        ("25.1", "25.1.4", False),
        ("", "25.1.4", False),
        (None, "25.1.4", False),
    ])
    def test_compare(self, version1, version2, expected):
        assert is_version_greater_or_equal(version1, version2) is expected


class TestTimestamps:
    def test_parse_zulu(self):
        assert parse_timestamp("2024-05-01T10:00:00Z") == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)

    def test_parse_none(self):
        assert parse_timestamp(None) is None

    def test_naive_datetime_is_utc(self):
        assert parse_timestamp(datetime(2024, 5, 1)).tzinfo == timezone.utc

    def test_epoch_round_trip(self):
        millis = to_epoch_millis("2024-05-01T10:00:00Z")

        assert from_epoch_millis(millis) == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)

    def test_from_epoch_accepts_iso_and_digit_strings(self):
        expected = datetime(2024, 5, 1, 10, tzinfo=timezone.utc)

        assert from_epoch_millis("2024-05-01T10:00:00Z") == expected
        assert from_epoch_millis(str(to_epoch_millis(expected))) == expected


def test_extract_workflow_file_name():
    assert extract_workflow_file_name(".github/workflows/ci.yml") == "ci.yml"
