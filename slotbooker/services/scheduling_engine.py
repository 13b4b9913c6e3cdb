"""
Application service exposing availability lookup and booking commits.

The engine coordinates loading actors and busy intervals through a storage
protocol and delegates the actual work to the domain-level
``AvailabilityResolver`` and to the ``BookingCommitter``. Keeping storage
behind a protocol lets tests and the CLI run against the in-memory adapter.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from pendulum import DateTime

from ..domain.availability_resolver import AvailabilityResolver
from ..domain.busy_intervals import BusyIntervalSet
from ..domain.exceptions import InvalidBookingStateError, LinkInactiveError
from ..domain.models import (
    Actor,
    AvailableWindow,
    Booking,
    BookingLink,
    BookingStatus,
    Requester,
    TimeRange,
)
from ..domain.timezone_math import local_day_bounds
from .booking_committer import BookingCommitter, Clock, CommitOutcome, utc_now
from .locking import ActorLockRegistry
from .protocols import SchedulingStorageProtocol

logger = logging.getLogger(__name__)


class SchedulingEngine:
    """
    Orchestrates availability resolution and booking commits for booking links.
    """

    def __init__(
        self,
        storage: SchedulingStorageProtocol,
        resolver: AvailabilityResolver | None = None,
        committer: BookingCommitter | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._storage = storage
        self._resolver = resolver or AvailabilityResolver()
        self._committer = committer or BookingCommitter(storage, ActorLockRegistry(), clock=clock)
        self._clock = clock

    def now(self) -> DateTime:
        """Current instant according to the engine clock."""
        return self._clock()

    def get_availability(
        self,
        link: BookingLink,
        range_start: DateTime,
        range_end: DateTime,
    ) -> List[AvailableWindow]:
        """
        Compute the windows a requester may pick on a booking link.

        Candidates starting inside the lead time, ending after the link's
        booking horizon, or landing on a day where every free host is at the
        daily cap are dropped.

        Returns:
            Chronologically ordered AvailableWindow objects
        """
        if not link.is_active:
            raise LinkInactiveError(f"Booking link '{link.id}' is inactive")

        meeting = link.meeting
        now = self._clock()
        horizon = now.add(days=link.availability_window_days)
        range_end = min(range_end, horizon)

        if range_end <= range_start:
            return []

        actors = self.load_actors(link)
        reference = self._reference_actor(link, actors)

        busy_sets = self.fetch_busy_sets(
            actor_ids=[actor.id for actor in actors],
            range_start=range_start.subtract(minutes=meeting.buffer_before),
            range_end=range_end.add(minutes=meeting.buffer_after),
        )

        windows = self._resolver.resolve(
            actors,
            busy_sets,
            meeting,
            range_start,
            range_end,
            reference=reference,
            require_all=link.pool.is_single_host,
            not_before=now.add(minutes=meeting.lead_time_minutes),
        )

        windows = [window for window in windows if window.time_range.end <= horizon]

        if meeting.max_per_day > 0:
            windows = self._apply_daily_cap(windows, meeting.max_per_day)

        logger.debug("Link %s: %d window(s) between %s and %s", link.id, len(windows), range_start, range_end)
        return windows

    def commit_booking(
        self,
        link: BookingLink,
        requester: Requester,
        window: TimeRange,
    ) -> Booking:
        """
        Reserve a chosen window.

        Raises:
            SlotbookerError: The error that ended the commit attempt
        """
        return self._unwrap(self._committer.commit(link, requester, window))

    def reschedule_booking(
        self,
        link: BookingLink,
        booking_id: str,
        window: TimeRange,
        requester: Requester | None = None,
    ) -> Booking:
        """
        Move a confirmed booking to a new window.

        The new booking goes through the full commit sequence; the old one is
        marked rescheduled in the same storage write.
        """
        original = self._storage.get_booking(booking_id)
        if not original.is_confirmed:
            raise InvalidBookingStateError(f"Booking {booking_id} is {original.status.value}, not confirmed")
        if original.link_id != link.id:
            raise InvalidBookingStateError(f"Booking {booking_id} does not belong to link '{link.id}'")

        outcome = self._committer.commit(
            link,
            requester or original.requester,
            window,
            replaces=original,
        )
        return self._unwrap(outcome)

    def cancel_booking(self, booking_id: str) -> Booking:
        """Cancel a confirmed booking. The record is kept for fairness history."""
        booking = self._storage.get_booking(booking_id)
        if not booking.is_confirmed:
            raise InvalidBookingStateError(f"Booking {booking_id} is {booking.status.value}, not confirmed")

        cancelled = self._storage.update_booking_status(booking_id, BookingStatus.CANCELLED)
        logger.info("Cancelled booking %s on link %s", booking_id, booking.link_id)
        return cancelled

    def load_actors(self, link: BookingLink) -> List[Actor]:
        """Load every actor that may host on the link, in pool order."""
        actors: List[Actor] = []
        for actor_id in link.pool.candidate_ids():
            policy, zone_name = self._storage.load_policy(actor_id)
            actors.append(Actor(id=actor_id, timezone=zone_name, policy=policy))
        return actors

    def fetch_busy_sets(
        self,
        *,
        actor_ids: List[str],
        range_start: DateTime,
        range_end: DateTime,
    ) -> Dict[str, BusyIntervalSet]:
        """Fetch busy intervals for the requested actors."""
        return {
            actor_id: BusyIntervalSet(
                actor_id,
                self._storage.load_commitments(actor_id, range_start, range_end),
            )
            for actor_id in actor_ids
        }

    def _reference_actor(self, link: BookingLink, actors: List[Actor]) -> Actor:
        """
        Actor whose zone and policy generate candidates.

        Single-host links use the host; team links use the link owner. A link's
        own availability override replaces that actor's working hours.
        """
        if link.pool.is_single_host:
            reference = actors[0]
        else:
            policy, zone_name = self._storage.load_policy(link.owner_id)
            reference = Actor(id=link.owner_id, timezone=zone_name, policy=policy)

        if link.availability_override is not None:
            reference = Actor(id=reference.id, timezone=reference.timezone, policy=link.availability_override)

        return reference

    def _apply_daily_cap(self, windows: List[AvailableWindow], max_per_day: int) -> List[AvailableWindow]:
        counts: Dict[Tuple[str, DateTime], int] = {}
        zones: Dict[str, str] = {}
        capped: List[AvailableWindow] = []

        for window in windows:
            open_ids = []
            for actor_id in window.actor_ids:
                if actor_id not in zones:
                    zones[actor_id] = self._storage.load_policy(actor_id)[1]
                zone_name = zones[actor_id]

                day_start, day_end = local_day_bounds(window.time_range.start, zone_name)
                key = (actor_id, day_start)

                if key not in counts:
                    counts[key] = self._storage.count_confirmed_bookings(actor_id, day_start, day_end)

                if counts[key] < max_per_day:
                    open_ids.append(actor_id)

            if open_ids:
                capped.append(AvailableWindow(time_range=window.time_range, actor_ids=tuple(open_ids)))

        return capped

    @staticmethod
    def _unwrap(outcome: CommitOutcome) -> Booking:
        if not outcome.committed:
            raise outcome.error
        return outcome.booking
