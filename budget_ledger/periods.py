"""
Calendar Partitioner

Derives a month's calendar boundaries and splits it into Monday-starting
weeks clipped to the month's range. Only the start date matters here;
amounts and budgets are irrelevant to the partition.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import NamedTuple, Union

DateLike = Union[date, datetime]


class WeekSpan(NamedTuple):
    """One clipped week of a month partition."""
    index: int
    start_date: date
    end_date: date

    @property
    def days(self) -> int:
        return (self.end_date - self.start_date).days + 1


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def period_key(value: DateLike) -> str:
    """'YYYY-MM' of the date's local calendar year and month."""
    day = _as_date(value)
    return f"{day.year:04d}-{day.month:02d}"


def month_end(value: DateLike) -> date:
    """Last calendar day of the date's month."""
    day = _as_date(value)
    last = calendar.monthrange(day.year, day.month)[1]
    return date(day.year, day.month, last)


def monday_of_week(value: DateLike) -> date:
    """Rewind to the Monday of the ISO week (Sunday belongs to the previous week)."""
    day = _as_date(value)
    return day - timedelta(days=day.weekday())


def partition_weeks(start: DateLike, end: DateLike) -> list[WeekSpan]:
    """
    Split [start, end] into consecutive Monday-starting weeks.

    The first and last weeks are clipped to the range, so the result covers
    every day exactly once. An empty list is returned when end < start.
    """
    start_day = _as_date(start)
    end_day = _as_date(end)

    weeks: list[WeekSpan] = []
    if end_day < start_day:
        return weeks

    cursor = monday_of_week(start_day)
    index = 1
    while cursor <= end_day:
        raw_end = cursor + timedelta(days=6)
        weeks.append(
            WeekSpan(
                index=index,
                start_date=max(cursor, start_day),
                end_date=min(raw_end, end_day),
            )
        )
        cursor += timedelta(days=7)
        index += 1
    return weeks
