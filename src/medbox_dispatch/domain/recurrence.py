"""Weekly recurrence arithmetic for recurring dispense plans.

Weekdays follow the planning UI convention: ``0`` is Sunday, ``6`` is
Saturday. Calendar arithmetic happens in the caller-supplied time zone and
results are returned in UTC.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import TYPE_CHECKING

from ..primitives.exceptions import ReschedulingImpossibleError

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import tzinfo

TIME_OF_DAY_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
_TIME_OF_DAY_RE = re.compile(TIME_OF_DAY_PATTERN)

DAYS_PER_WEEK = 7


def parse_time_of_day(value: str) -> time:
    """Parse ``HH:MM`` into a :class:`datetime.time`."""
    if not _TIME_OF_DAY_RE.match(value):
        raise ValueError(f"Invalid time of day {value!r}; expected HH:MM")
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def weekday_of(day: date) -> int:
    """Return the weekday of *day* with Sunday as ``0``."""
    return day.isoweekday() % DAYS_PER_WEEK


def _candidates(
    time_of_day: str,
    recurring_days: Iterable[int],
    reference: datetime,
    tz: tzinfo,
    offsets: range,
) -> Iterable[datetime]:
    days = set(recurring_days)
    if not days:
        raise ReschedulingImpossibleError("recurring day set is empty")
    at = parse_time_of_day(time_of_day)
    local_day = reference.astimezone(tz).date()
    for offset in offsets:
        day = local_day + timedelta(days=offset)
        if weekday_of(day) in days:
            yield datetime.combine(day, at, tzinfo=tz)


def next_occurrence(
    time_of_day: str,
    recurring_days: Iterable[int],
    *,
    after: datetime,
    tz: tzinfo = timezone.utc,
) -> datetime:
    """Next occurrence strictly after the calendar day of *after*.

    Used after a dispense: the day just served is never returned, even when
    its weekday matches and *time_of_day* is still ahead.

    Raises:
        ReschedulingImpossibleError: when no day in the following week
            matches (empty or out-of-range day set).
    """
    for candidate in _candidates(
        time_of_day, recurring_days, after, tz, range(1, DAYS_PER_WEEK + 1)
    ):
        return candidate.astimezone(timezone.utc)
    raise ReschedulingImpossibleError("no weekday in range 0..6 selected")


def first_occurrence(
    time_of_day: str,
    recurring_days: Iterable[int],
    *,
    now: datetime,
    tz: tzinfo = timezone.utc,
) -> datetime:
    """First occurrence for a newly created plan; may be later today.

    When today is the only selected weekday and *time_of_day* has already
    passed, the same weekday one week ahead is returned.
    """
    for candidate in _candidates(
        time_of_day, recurring_days, now, tz, range(DAYS_PER_WEEK + 1)
    ):
        if candidate < now:
            continue
        return candidate.astimezone(timezone.utc)
    raise ReschedulingImpossibleError("no weekday in range 0..6 selected")
