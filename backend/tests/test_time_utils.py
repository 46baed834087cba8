from datetime import datetime, timedelta, timezone

import pytest

from settlement.time_utils import business_day_start, parse_iso_datetime, to_utc_z


def test_business_day_start_truncates_to_midnight():
    assert business_day_start(datetime(2026, 3, 10, 23, 59, 58, 1)) == datetime(2026, 3, 10)


@pytest.mark.parametrize("raw,expected", [
    ("2026-03-10", datetime(2026, 3, 10)),
    ("2026-03-10T08:30", datetime(2026, 3, 10, 8, 30)),
    ("2026-03-10T08:30:00Z", datetime(2026, 3, 10, 8, 30)),
    ("2026-03-10T14:15:00+05:45", datetime(2026, 3, 10, 8, 30)),
])
def test_history_bounds_are_normalized_to_utc(raw, expected):
    assert parse_iso_datetime(raw) == expected


def test_blank_bound_means_unbounded():
    assert parse_iso_datetime(None) is None
    assert parse_iso_datetime("  ") is None


def test_malformed_bound_raises():
    with pytest.raises(ValueError):
        parse_iso_datetime("yesterday")


def test_timestamps_render_with_z_suffix():
    assert to_utc_z(datetime(2026, 3, 10, 8, 30, 5, 999)) == "2026-03-10T08:30:05Z"
    aware = datetime(2026, 3, 10, 14, 15, tzinfo=timezone(timedelta(hours=5, minutes=45)))
    assert to_utc_z(aware) == "2026-03-10T08:30:00Z"
    assert to_utc_z(None) is None
