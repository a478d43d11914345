"""Tests for shared helpers: time parsing, page size clamping and null filtering."""

import pytest
from cloudtrail_mcp_server.common import (
    TimeFormatError,
    format_timestamp,
    parse_time_input,
    remove_null_values,
    validate_max_results,
)
from datetime import datetime, timedelta, timezone


class TestParseTimeInput:
    """Tests for parse_time_input."""

    @pytest.mark.parametrize(
        'unit,duration',
        [
            ('second', timedelta(seconds=1)),
            ('minute', timedelta(seconds=60)),
            ('hour', timedelta(seconds=3600)),
            ('day', timedelta(seconds=86400)),
            ('week', timedelta(days=7)),
            ('month', timedelta(days=30)),
        ],
    )
    def test_relative_units(self, fixed_now, unit, duration):
        assert parse_time_input(f'3 {unit}s ago', now=fixed_now) == fixed_now - 3 * duration
        assert parse_time_input(f'1 {unit} ago', now=fixed_now) == fixed_now - duration

    def test_relative_is_case_insensitive_and_trimmed(self, fixed_now):
        assert parse_time_input('  2 HOURS Ago ', now=fixed_now) == fixed_now - timedelta(hours=2)

    def test_now(self, fixed_now):
        assert parse_time_input(' NOW ', now=fixed_now) == fixed_now

    def test_now_defaults_to_current_time(self):
        before = datetime.now(timezone.utc)
        result = parse_time_input('now')
        after = datetime.now(timezone.utc)
        assert before <= result <= after

    def test_iso_with_z_suffix(self):
        assert parse_time_input('2025-01-01T00:00:00Z') == datetime(
            2025, 1, 1, tzinfo=timezone.utc
        )

    def test_iso_with_offset_is_converted_to_utc(self):
        assert parse_time_input('2025-01-01T02:00:00+02:00') == datetime(
            2025, 1, 1, tzinfo=timezone.utc
        )

    def test_naive_iso_is_utc(self):
        assert parse_time_input('2025-01-01 08:15:00') == datetime(
            2025, 1, 1, 8, 15, tzinfo=timezone.utc
        )

    def test_unix_seconds(self):
        assert parse_time_input('1735689600') == datetime(2025, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        'value',
        [
            'not a time',
            '',
            '5 fortnights ago',
            'yesterday',
            '-1 day ago',
            '100000 months ago',
            '1000000000 days ago',
        ],
    )
    def test_invalid_values(self, value):
        with pytest.raises(TimeFormatError) as excinfo:
            parse_time_input(value)
        assert 'Invalid time format' in str(excinfo.value)
        assert '1 day ago' in str(excinfo.value)


class TestValidateMaxResults:
    """Tests for validate_max_results."""

    def test_default_when_missing(self):
        assert validate_max_results(None, default=10, max_allowed=50) == 10

    @pytest.mark.parametrize('requested', [-100, -1, 0, 1, 25, 50, 51, 1000])
    def test_clamped(self, requested):
        assert validate_max_results(requested, default=10, max_allowed=50) == max(
            1, min(50, requested)
        )


def test_remove_null_values():
    assert remove_null_values({'a': 1, 'b': None, 'c': False, 'd': ''}) == {
        'a': 1,
        'c': False,
        'd': '',
    }


def test_format_timestamp():
    assert format_timestamp(None) is None
    assert format_timestamp(datetime(2025, 1, 1, 12, tzinfo=timezone.utc)) == '2025-01-01T12:00:00Z'
    assert format_timestamp(datetime(2025, 1, 1, 12)) == '2025-01-01T12:00:00Z'
