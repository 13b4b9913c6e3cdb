"""
Domain layer - Pure business logic without external dependencies.
"""

from .assignment import get_strategy
from .availability_resolver import AvailabilityResolver
from .busy_intervals import BusyIntervalSet
from .models import (
    Actor,
    AssignmentMethod,
    AssignmentPool,
    AvailableWindow,
    Booking,
    BookingLink,
    BookingStatus,
    Commitment,
    CommitmentSource,
    MeetingSpec,
    Requester,
    TimeRange,
)
from .slot_generator import SlotGenerator
from .working_hours import WorkingDay, WorkingHoursPolicy

__all__ = [
    "Actor",
    "AssignmentMethod",
    "AssignmentPool",
    "AvailabilityResolver",
    "AvailableWindow",
    "Booking",
    "BookingLink",
    "BookingStatus",
    "BusyIntervalSet",
    "Commitment",
    "CommitmentSource",
    "MeetingSpec",
    "Requester",
    "SlotGenerator",
    "TimeRange",
    "WorkingDay",
    "WorkingHoursPolicy",
    "get_strategy",
]
