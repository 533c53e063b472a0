"""Tests for Riyadh calendar helpers."""
from datetime import date, datetime, timezone

import pydantic
import pytest

from retailops.core.config import Settings
from retailops.core.exceptions import ValidationError
from retailops.core.timeutils import (
    get_days_in_month,
    get_month_instant_range,
    get_month_range,
    get_week_range_for_date,
    get_week_start,
    intersect_ranges,
    is_ramadan,
    parse_date_str,
    parse_month_key,
    to_riyadh_date,
    week_dates,
    week_index_in_year,
)


def test_week_starts_on_saturday() -> None:
    assert get_week_start(date(2026, 1, 21)) == date(2026, 1, 17)
    assert get_week_start(date(2026, 1, 17)) == date(2026, 1, 17)
    assert get_week_start(date(2026, 1, 23)) == date(2026, 1, 17)  # Friday closes the week


def test_week_range_is_half_open() -> None:
    start, end = get_week_range_for_date(date(2026, 1, 1))
    assert start == date(2025, 12, 27)
    assert end == date(2026, 1, 3)
    assert len(week_dates(start)) == 7


def test_parse_month_key_accepts_arabic_digits() -> None:
    assert parse_month_key("٢٠٢٦-٠٢") == (2026, 2)
    assert parse_month_key(" 2026-12 ") == (2026, 12)


@pytest.mark.parametrize("bad", ["2026-13", "2026-2", "Feb 2026", ""])
def test_parse_month_key_rejects_invalid(bad) -> None:
    with pytest.raises(ValidationError):
        parse_month_key(bad)


def test_month_instant_range_uses_riyadh_midnight() -> None:
    start, end = get_month_instant_range("2026-02")
    assert start == datetime(2026, 1, 31, 21, 0, tzinfo=timezone.utc)
    assert end == datetime(2026, 2, 28, 21, 0, tzinfo=timezone.utc)


def test_month_range_uses_day_keys() -> None:
    start, end = get_month_range("2026-12")
    assert start == datetime(2026, 12, 1, tzinfo=timezone.utc)
    assert end == datetime(2027, 1, 1, tzinfo=timezone.utc)


def test_days_in_month_handles_leap_years() -> None:
    assert get_days_in_month("2024-02") == 29
    assert get_days_in_month("2026-02") == 28


def test_late_utc_evening_is_next_riyadh_day() -> None:
    assert to_riyadh_date(datetime(2026, 1, 31, 21, 30, tzinfo=timezone.utc)) == date(2026, 2, 1)
    assert to_riyadh_date(datetime(2026, 1, 31, 20, 59)) == date(2026, 1, 31)


def test_intersect_ranges() -> None:
    assert intersect_ranges(date(2026, 1, 1), date(2026, 1, 10), date(2026, 1, 5), date(2026, 2, 1)) == (
        date(2026, 1, 5),
        date(2026, 1, 10),
    )
    assert intersect_ranges(date(2026, 1, 1), date(2026, 1, 5), date(2026, 1, 5), date(2026, 1, 9)) is None


def test_week_index_counts_from_first_saturday() -> None:
    assert week_index_in_year(date(2026, 1, 2)) == 0
    assert week_index_in_year(date(2026, 1, 3)) == 0
    assert week_index_in_year(date(2026, 1, 10)) == 1
    assert week_index_in_year(date(2026, 1, 18)) == 2


def test_explicit_ramadan_window_wins_over_default() -> None:
    settings = Settings(DATABASE_URL="sqlite+aiosqlite://", RAMADAN_START="2027-02-08", RAMADAN_END="2027-03-09")
    assert settings.ramadan_range == (date(2027, 2, 8), date(2027, 3, 9))
    assert is_ramadan(date(2027, 3, 9), settings)
    assert not is_ramadan(date(2026, 2, 20), settings)


def test_default_ramadan_window() -> None:
    settings = Settings(DATABASE_URL="sqlite+aiosqlite://", RAMADAN_START=None, RAMADAN_END=None)
    assert is_ramadan(date(2026, 2, 20), settings)


@pytest.mark.parametrize(
    "start, end",
    [
        ("2027-02-30", "2027-03-09"),
        ("soon", None),
        ("2027-03-09", "2027-02-08"),
    ],
)
def test_bad_ramadan_window_fails_at_startup(start, end) -> None:
    with pytest.raises(pydantic.ValidationError):
        Settings(DATABASE_URL="sqlite+aiosqlite://", RAMADAN_START=start, RAMADAN_END=end)


def test_parse_date_str_names_field() -> None:
    assert parse_date_str("٢٠٢٦-٠١-١٨") == date(2026, 1, 18)
    with pytest.raises(ValidationError) as exc:
        parse_date_str("2026-13-01", field="day")
    assert exc.value.field == "day"
