"""
Per-weekday working hours in an actor's local time.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Dict, Iterable, Mapping, Tuple

import pendulum
from pendulum import DateTime

from .exceptions import InvalidPolicyError
from .timezone_math import local_weekday, to_wall_clock


def parse_clock(value: str) -> time:
    """
    Parse an ``HH:MM`` string.

    Raises:
        InvalidPolicyError: If the string is not a valid 24h clock time
    """
    try:
        hour_str, minute_str = value.split(":")
        hour, minute = int(hour_str), int(minute_str)
    except (AttributeError, ValueError) as exc:
        raise InvalidPolicyError(f"Expected HH:MM, got {value!r}") from exc

    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise InvalidPolicyError(f"Clock time out of range: {value!r}")

    return time(hour=hour, minute=minute)


@dataclass(frozen=True)
class WorkingDay:
    """
    Working window for one weekday.

    Invariant: when enabled, start is before end on the same day.
    """
    enabled: bool
    start: time
    end: time

    def __post_init__(self):
        if self.enabled and self.end <= self.start:
            raise InvalidPolicyError(
                f"Working day must end after it starts "
                f"(got {self.start:%H:%M}-{self.end:%H:%M}); cross-midnight windows are not supported"
            )

    @classmethod
    def from_strings(cls, enabled: bool, start: str, end: str) -> "WorkingDay":
        return cls(enabled=enabled, start=parse_clock(start), end=parse_clock(end))

    def contains(self, moment: time) -> bool:
        return self.enabled and self.start <= moment < self.end


@dataclass(frozen=True)
class WorkingHoursPolicy:
    """
    Seven-entry working-hours table indexed 0=Sunday..6=Saturday.
    """
    days: Tuple[WorkingDay, ...]

    def __post_init__(self):
        if len(self.days) != 7:
            raise InvalidPolicyError(f"Working hours need 7 day entries, got {len(self.days)}")

    @classmethod
    def default(cls) -> "WorkingHoursPolicy":
        """Monday to Friday, 09:00 to 17:00."""
        return cls.uniform(range(1, 6), "09:00", "17:00")

    @classmethod
    def uniform(cls, weekdays: Iterable[int], start: str, end: str) -> "WorkingHoursPolicy":
        """Same hours on every listed weekday, every other day disabled."""
        enabled_days = set(weekdays)
        invalid = sorted(day for day in enabled_days if day not in range(7))
        if invalid:
            raise InvalidPolicyError(f"Weekdays must be between 0 and 6, got {invalid}")

        return cls(days=tuple(
            WorkingDay.from_strings(day in enabled_days, start, end)
            for day in range(7)
        ))

    @classmethod
    def from_mapping(cls, table: Mapping[int, WorkingDay]) -> "WorkingHoursPolicy":
        """Build a policy from a weekday-keyed mapping; missing days use the default table."""
        defaults = cls.default().days
        days: Dict[int, WorkingDay] = dict(enumerate(defaults))

        for weekday, working_day in table.items():
            if weekday not in range(7):
                raise InvalidPolicyError(f"Weekday must be between 0 and 6, got {weekday}")
            days[weekday] = working_day

        return cls(days=tuple(days[day] for day in range(7)))

    def for_weekday(self, weekday: int) -> WorkingDay:
        return self.days[weekday]

    def is_within(self, local: datetime) -> bool:
        """Check whether a local wall-clock time falls inside a working window."""
        return self.for_weekday(local_weekday(local)).contains(local.time())

    def window_for(self, day: date) -> Tuple[DateTime, DateTime] | None:
        """
        Get the local working window for a calendar day.
        Returns None if the weekday is disabled.
        """
        working_day = self.for_weekday(local_weekday(day))
        if not working_day.enabled:
            return None

        start = pendulum.naive(day.year, day.month, day.day, working_day.start.hour, working_day.start.minute)
        end = pendulum.naive(day.year, day.month, day.day, working_day.end.hour, working_day.end.minute)

        return start, end

    def covers(self, start: datetime, end: datetime, zone_name: str) -> bool:
        """Check whether the instants [start, end) lie inside one local working window."""
        local_start = to_wall_clock(start, zone_name)
        local_end = to_wall_clock(end, zone_name)

        window = self.window_for(local_start.date())
        if window is None:
            return False

        window_start, window_end = window
        return window_start <= local_start and local_end <= window_end
