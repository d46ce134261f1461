from __future__ import annotations

from dataclasses import dataclass
from datetime import time

from absence_bot.errors import InvertedRange, Misaligned, OutOfRange
from absence_bot.models import AbsenceWindow, FullDay, Partial

SCHOOL_DAY_START = time(8, 0)
SCHOOL_DAY_END = time(17, 0)
GRANULARITY_MINUTES = 10


@dataclass(frozen=True)
class WindowPolicy:
    """Reportable range and minute step for partial-day absences."""

    min: time = SCHOOL_DAY_START
    max: time = SCHOOL_DAY_END
    granularity_minutes: int = GRANULARITY_MINUTES

    def __post_init__(self) -> None:
        if self.granularity_minutes <= 0:
            raise ValueError("granularity_minutes must be positive")
        if self.min > self.max:
            raise ValueError("policy min must not be after max")


def _seconds(value: time) -> int:
    return value.hour * 3600 + value.minute * 60 + value.second


def make_window(
    is_full_day: bool,
    start: time,
    end: time,
    policy: WindowPolicy | None = None,
) -> AbsenceWindow:
    """Build the absence window or raise a ``WindowError``."""

    if is_full_day:
        return FullDay()

    policy = policy or WindowPolicy()
    for value in (start, end):
        if value < policy.min or value > policy.max:
            raise OutOfRange(f"{value:%H:%M} är utanför {policy.min:%H:%M}-{policy.max:%H:%M}")

    step = policy.granularity_minutes * 60
    origin = _seconds(policy.min)
    for value in (start, end):
        if (_seconds(value) - origin) % step or value.microsecond:
            raise Misaligned(f"{value:%H:%M} är inte en hel {policy.granularity_minutes}-minuters tid")

    if start > end:
        raise InvertedRange(f"Starttid {start:%H:%M} är efter sluttid {end:%H:%M}")

    return Partial(start=start, end=end)


__all__ = ["GRANULARITY_MINUTES", "SCHOOL_DAY_END", "SCHOOL_DAY_START", "WindowPolicy", "make_window"]
