"""Tests for weekly recurrence arithmetic (Sunday is weekday 0)."""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from medbox_dispatch.domain.recurrence import (
    first_occurrence,
    next_occurrence,
    parse_time_of_day,
    weekday_of,
)
from medbox_dispatch.primitives.exceptions import ReschedulingImpossibleError

# 2024-01-01 is a Monday.
MONDAY_0900 = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


def test_weekday_of_uses_sunday_as_zero() -> None:
    assert weekday_of(date(2024, 1, 7)) == 0
    assert weekday_of(date(2024, 1, 1)) == 1
    assert weekday_of(date(2024, 1, 6)) == 6


def test_next_occurrence_picks_next_selected_weekday() -> None:
    result = next_occurrence("08:00", {1, 3}, after=MONDAY_0900)

    assert result == datetime(2024, 1, 3, 8, 0, tzinfo=timezone.utc)


def test_next_occurrence_never_returns_the_reference_day() -> None:
    early_monday = datetime(2024, 1, 1, 6, 0, tzinfo=timezone.utc)

    result = next_occurrence("08:00", {1}, after=early_monday)

    assert result == datetime(2024, 1, 8, 8, 0, tzinfo=timezone.utc)


def test_next_occurrence_wraps_to_sunday() -> None:
    saturday = datetime(2024, 1, 6, 10, 0, tzinfo=timezone.utc)

    result = next_occurrence("21:30", {0}, after=saturday)

    assert result == datetime(2024, 1, 7, 21, 30, tzinfo=timezone.utc)


def test_next_occurrence_crosses_year_boundary() -> None:
    monday = datetime(2024, 12, 30, 12, 0, tzinfo=timezone.utc)

    result = next_occurrence("08:00", {3}, after=monday)

    assert result == datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc)


def test_next_occurrence_uses_local_calendar_of_time_zone() -> None:
    berlin = ZoneInfo("Europe/Berlin")
    # 23:30 UTC Monday is already Tuesday in Berlin (UTC+1 in winter).
    late_monday = datetime(2024, 1, 1, 23, 30, tzinfo=timezone.utc)

    result = next_occurrence("08:00", {1, 3}, after=late_monday, tz=berlin)

    assert result == datetime(2024, 1, 3, 7, 0, tzinfo=timezone.utc)
    assert result.tzinfo == timezone.utc


def test_next_occurrence_empty_day_set_raises() -> None:
    with pytest.raises(ReschedulingImpossibleError) as exc_info:
        next_occurrence("08:00", set(), after=MONDAY_0900)

    assert "empty" in exc_info.value.reason


def test_next_occurrence_out_of_range_days_raise() -> None:
    with pytest.raises(ReschedulingImpossibleError):
        next_occurrence("08:00", {7, 9}, after=MONDAY_0900)


def test_first_occurrence_can_be_later_today() -> None:
    early_monday = datetime(2024, 1, 1, 6, 0, tzinfo=timezone.utc)

    result = first_occurrence("08:00", {1, 3}, now=early_monday)

    assert result == datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)


def test_first_occurrence_skips_today_when_time_has_passed() -> None:
    result = first_occurrence("08:00", {1, 3}, now=MONDAY_0900)

    assert result == datetime(2024, 1, 3, 8, 0, tzinfo=timezone.utc)


def test_first_occurrence_single_weekday_already_passed_goes_to_next_week() -> None:
    result = first_occurrence("08:00", {1}, now=MONDAY_0900)

    assert result == datetime(2024, 1, 8, 8, 0, tzinfo=timezone.utc)


def test_first_occurrence_at_exactly_now_is_kept() -> None:
    result = first_occurrence("09:00", {1}, now=MONDAY_0900)

    assert result == MONDAY_0900


@pytest.mark.parametrize("value", ["24:00", "8:00", "08:60", "0800", ""])
def test_parse_time_of_day_rejects_malformed_values(value: str) -> None:
    with pytest.raises(ValueError):
        parse_time_of_day(value)


def test_parse_time_of_day() -> None:
    parsed = parse_time_of_day("23:59")

    assert (parsed.hour, parsed.minute) == (23, 59)
