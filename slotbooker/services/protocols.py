"""
Collaborator interfaces the engine consumes.

Storage, account settings and calendar sync live outside the engine; anything
implementing these methods can be plugged in (the in-memory adapter in tests
and the CLI, a database-backed store in production).
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Tuple

from pendulum import DateTime

from ..domain.models import Booking, BookingStatus, Commitment, TimeRange
from ..domain.working_hours import WorkingHoursPolicy


class SchedulingStorageProtocol(Protocol):
    """Protocol describing the storage behaviour needed by the engine."""

    def load_policy(self, actor_id: str) -> Tuple[WorkingHoursPolicy, str]:
        """Return the actor's working hours and IANA zone name."""

    def load_commitments(
        self,
        actor_id: str,
        range_start: DateTime,
        range_end: DateTime,
    ) -> List[Commitment]:
        """Return busy intervals overlapping the range, bookings included."""

    def count_confirmed_bookings(
        self,
        actor_id: str,
        range_start: Optional[DateTime] = None,
        range_end: Optional[DateTime] = None,
        *,
        link_id: Optional[str] = None,
    ) -> int:
        """Count confirmed bookings, all-time when no range is given."""

    def persist_booking(self, booking: Booking, *, replaces_id: Optional[str] = None) -> Booking:
        """
        Atomically store a confirmed booking.

        Raises StorageConflictError if its buffered window overlaps another
        confirmed booking of the same actor (other than ``replaces_id``).
        """

    def create_calendar_commitment(self, actor_id: str, window: TimeRange, booking_id: str) -> None:
        """Mirror a committed booking onto the actor's calendar."""

    def get_booking(self, booking_id: str) -> Booking:
        """Return a booking or raise NotFoundError."""

    def update_booking_status(self, booking_id: str, status: BookingStatus) -> Booking:
        """Transition a booking's status and return the updated record."""
