"""
Domain models for time ranges, commitments, meeting shapes and bookings.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Tuple

import pendulum
from pendulum import DateTime

from .working_hours import WorkingHoursPolicy


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable half-open time range [start, end).

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another."""
        return self.start < other.end and self.end > other.start

    def intersect(self, other: "TimeRange") -> "TimeRange | None":
        """
        Calculate the intersection of two time ranges.
        Returns None if there is no overlap.
        """
        if not self.overlaps(other):
            return None

        start = max(self.start, other.start)
        end = min(self.end, other.end)

        return TimeRange(start=start, end=end)

    def expand(self, before_minutes: int = 0, after_minutes: int = 0) -> "TimeRange":
        """Return the range widened by the given buffers on each side."""
        return TimeRange(
            start=self.start.subtract(minutes=before_minutes),
            end=self.end.add(minutes=after_minutes),
        )

    def in_timezone(self, zone_name: str) -> "TimeRange":
        """Return the same range expressed in another zone."""
        return TimeRange(
            start=self.start.in_timezone(zone_name),
            end=self.end.in_timezone(zone_name),
        )

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


class CommitmentSource(str, Enum):
    """Origin of a busy interval."""
    BOOKING = "booking"
    CALENDAR = "calendar"
    TIME_BLOCK = "time_block"


@dataclass(frozen=True)
class Commitment:
    """An existing busy interval for one actor."""
    time_range: TimeRange
    source: CommitmentSource = CommitmentSource.CALENDAR
    booking_id: Optional[str] = None  # set when the commitment mirrors a booking


@dataclass(frozen=True)
class Actor:
    """A potential host with a calendar."""
    id: str
    timezone: str
    policy: WorkingHoursPolicy


@dataclass(frozen=True)
class MeetingSpec:
    """
    The shape of the meeting being scheduled.

    ``timezone`` is for display only; all computation happens on instants.
    """
    duration_minutes: int
    buffer_before: int = 0
    buffer_after: int = 0
    lead_time_minutes: int = 0
    max_per_day: int = 0  # 0 = unlimited
    timezone: str = "UTC"

    def __post_init__(self):
        if self.duration_minutes <= 0:
            raise ValueError("duration_minutes must be greater than zero")
        if min(self.buffer_before, self.buffer_after, self.lead_time_minutes, self.max_per_day) < 0:
            raise ValueError("Buffers, lead time and daily cap cannot be negative")


@dataclass(frozen=True)
class AvailableWindow:
    """A candidate window that every required actor can take."""
    time_range: TimeRange
    actor_ids: Tuple[str, ...]

    def format_display(self, zone_name: str) -> str:
        """
        Format the window for display in the given zone.
        Format: Weekday, YYYY-MM-DD | HH:mm - HH:mm
        """
        local = self.time_range.in_timezone(zone_name)
        date_str = local.start.format("dddd, YYYY-MM-DD")
        time_str = f"{local.start.format('HH:mm')} - {local.end.format('HH:mm')}"

        return f"{date_str} | {time_str} ({local.duration_minutes()} min)"


class AssignmentMethod(str, Enum):
    """How a booking link picks its host."""
    FIXED = "fixed"
    POOLED = "pooled"  # first available
    ROUND_ROBIN = "round_robin"  # fewest bookings


@dataclass(frozen=True)
class AssignmentPool:
    """Eligible hosts for a link, in configured order."""
    actor_ids: Tuple[str, ...]
    method: AssignmentMethod = AssignmentMethod.FIXED
    fixed_actor_id: Optional[str] = None

    def __post_init__(self):
        if not self.actor_ids:
            raise ValueError("An assignment pool needs at least one actor")
        if len(set(self.actor_ids)) != len(self.actor_ids):
            raise ValueError(f"Duplicate actors in pool: {list(self.actor_ids)}")
        if self.method is AssignmentMethod.FIXED and self.fixed_actor_id is None:
            raise ValueError("Fixed assignment requires a designated actor")

    @property
    def is_single_host(self) -> bool:
        return self.method is AssignmentMethod.FIXED

    def candidate_ids(self) -> Tuple[str, ...]:
        """Actors that may end up hosting a booking on this link."""
        if self.is_single_host:
            return (self.fixed_actor_id,)
        return self.actor_ids


@dataclass(frozen=True)
class BookingLink:
    """Fully resolved, immutable booking link configuration."""
    id: str
    owner_id: str
    meeting: MeetingSpec
    pool: AssignmentPool
    availability_override: Optional[WorkingHoursPolicy] = None
    availability_window_days: int = 30
    is_active: bool = True
    title: str = ""


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


@dataclass(frozen=True)
class Requester:
    """The person asking for the meeting."""
    name: str
    email: str
    notes: str = ""


@dataclass(frozen=True)
class Booking:
    """
    The durable result of a commit.

    Bookings are never deleted; cancellation and rescheduling are status changes.
    """
    id: str
    link_id: str
    actor_id: str
    time_range: TimeRange
    requester: Requester
    buffer_before: int = 0
    buffer_after: int = 0
    status: BookingStatus = BookingStatus.CONFIRMED
    created_at: DateTime = field(default_factory=lambda: pendulum.now("UTC"))
    replaces_id: Optional[str] = None

    @property
    def is_confirmed(self) -> bool:
        return self.status is BookingStatus.CONFIRMED

    def buffered_range(self) -> TimeRange:
        """The window widened by the buffers that applied when it was booked."""
        return self.time_range.expand(self.buffer_before, self.buffer_after)

    def with_status(self, status: BookingStatus) -> "Booking":
        return replace(self, status=status)
