from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterator, Protocol
from zoneinfo import ZoneInfo

from ..domain.errors import DomainError, ErrorKind

MINUTES_PER_DAY = 24 * 60

_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_TIME_RE = re.compile(r"([0-9]{2}):([0-9]{2})")


def parse_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string; anything else is an InvalidFormat error."""
    if not isinstance(value, str) or _DATE_RE.fullmatch(value) is None:
        raise DomainError(ErrorKind.INVALID_FORMAT, f"Invalid date format: {value!r}")
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise DomainError(ErrorKind.INVALID_FORMAT, f"Invalid date format: {value!r}") from exc


def parse_time_of_day(value: str) -> time:
    """Parse a 24-hour ``HH:MM`` string; anything else is an InvalidFormat error."""
    match = _TIME_RE.fullmatch(value) if isinstance(value, str) else None
    if match is None:
        raise DomainError(ErrorKind.INVALID_FORMAT, f"Invalid time format: {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise DomainError(ErrorKind.INVALID_FORMAT, f"Invalid time format: {value!r}")
    return time(hour, minute)


def minutes_of_day(value: time) -> int:
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"{minutes} minutes is outside a single day")
    return time(minutes // 60, minutes % 60)


def add_minutes(value: time, minutes: int) -> time:
    """Shift a time of day; raises ValueError when the result leaves the day."""
    return from_minutes(minutes_of_day(value) + minutes)


def intervals_overlap(start_a, end_a, start_b, end_b) -> bool:
    # Half-open intervals: touching endpoints do not overlap.
    return start_a < end_b and start_b < end_a


def format_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def format_time(value: time) -> str:
    return value.strftime("%H:%M")


def iter_dates(start: date, end: date) -> Iterator[date]:
    # Offsets from ``start`` so the last yielded day may be date.max.
    for offset in range((end - start).days + 1):
        yield start + timedelta(days=offset)


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval ``[start, end)`` in minutes since midnight.

    ``end`` may exceed one day so that an interval running past midnight
    never fits inside a working hour.
    """

    start: int
    end: int

    @classmethod
    def of(cls, start: time, duration: int) -> "TimeWindow":
        begin = minutes_of_day(start)
        return cls(begin, begin + duration)

    @classmethod
    def between(cls, start: time, end: time) -> "TimeWindow":
        return cls(minutes_of_day(start), minutes_of_day(end))

    @property
    def is_empty(self) -> bool:
        return self.start >= self.end

    def overlaps(self, other: "TimeWindow") -> bool:
        return intervals_overlap(self.start, self.end, other.start, other.end)

    def contains(self, other: "TimeWindow") -> bool:
        return self.start <= other.start and other.end <= self.end

    def intersect(self, other: "TimeWindow") -> "TimeWindow":
        return TimeWindow(max(self.start, other.start), min(self.end, other.end))


class Clock(Protocol):
    def today(self) -> date: ...


class SystemClock:
    def __init__(self, tz: ZoneInfo) -> None:
        self.tz = tz

    def today(self) -> date:
        return datetime.now(self.tz).date()
