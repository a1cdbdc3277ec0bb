"""Half-open time ranges within a single calendar day."""
from __future__ import annotations

import re
from dataclasses import dataclass

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


def parse_time(value: str) -> tuple[int, int]:
    """Split an ``HH:MM`` string into ``(hour, minute)``.

    A trailing ``:SS`` component is accepted and ignored so values coming from
    database ``TIME`` columns parse the same way as form input.
    """

    match = _TIME_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    return hour, minute


def to_minutes(value: str) -> int:
    hour, minute = parse_time(value)
    return hour * 60 + minute


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@dataclass(frozen=True)
class TimeInterval:
    """``[start, end)`` in minutes since midnight."""

    start: int
    end: int

    @classmethod
    def from_strings(cls, start: str, end: str) -> "TimeInterval":
        return cls(to_minutes(start), to_minutes(end))

    @property
    def duration(self) -> int:
        return self.end - self.start

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start

    def overlaps(self, other: "TimeInterval") -> bool:
        # touching endpoints do not overlap
        return self.start < other.end and other.start < self.end

    def __str__(self) -> str:
        return f"{format_minutes(self.start)}-{format_minutes(self.end)}"


def overlaps(start_a: str, end_a: str, start_b: str, end_b: str) -> bool:
    return TimeInterval.from_strings(start_a, end_a).overlaps(TimeInterval.from_strings(start_b, end_b))
