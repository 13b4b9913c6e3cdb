"""
Validation and atomic reservation of a chosen meeting window.

The committer is a small state machine. It starts in VALIDATING and ends in
exactly one of CONFLICT_REJECTED, COMMITTED or FAILED. Checks run in a fixed
order and the first failure wins:

1. window length equals the meeting duration
2. the window starts at least ``lead_time`` after now
3. the host (or some pool member) is below the daily cap
4. the buffered window is still free against freshly loaded commitments
5. the assignment strategy picks a host
6. the booking is persisted and mirrored onto the host's calendar

Steps 3 to 6 run while holding the locks of every candidate actor, so the
daily cap cannot be overrun by concurrent commits on the same day.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, List, Optional

import pendulum
from pendulum import DateTime

from ..domain.assignment import get_strategy
from ..domain.busy_intervals import BusyIntervalSet
from ..domain.exceptions import (
    AssignmentError,
    ConflictRejectedError,
    DailyCapReachedError,
    DurationMismatchError,
    LeadTimeViolationError,
    LinkInactiveError,
    PersistenceFailureError,
    SlotbookerError,
    StorageConflictError,
    StorageError,
)
from ..domain.models import Booking, BookingLink, Requester, TimeRange
from ..domain.timezone_math import local_day_bounds
from .locking import ActorLockRegistry
from .protocols import SchedulingStorageProtocol

logger = logging.getLogger(__name__)

Clock = Callable[[], DateTime]


def utc_now() -> DateTime:
    return pendulum.now("UTC")


class CommitState(str, Enum):
    VALIDATING = "validating"
    CONFLICT_REJECTED = "conflict_rejected"
    COMMITTED = "committed"
    FAILED = "failed"


@dataclass(frozen=True)
class CommitOutcome:
    """Terminal state of one commit attempt."""
    state: CommitState
    booking: Optional[Booking] = None
    error: Optional[SlotbookerError] = None

    @property
    def committed(self) -> bool:
        return self.state is CommitState.COMMITTED


class BookingCommitter:
    """
    Re-validates a chosen window and reserves it for one host.

    Two concurrent commits for overlapping windows on the same actor are
    serialised by the per-actor locks; the loser sees the winner's booking in
    step 4 and is rejected. The storage layer's insert-if-no-overlap check
    backs this up for stores shared between processes.
    """

    def __init__(
        self,
        storage: SchedulingStorageProtocol,
        locks: ActorLockRegistry | None = None,
        clock: Clock = utc_now,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
    ) -> None:
        self._storage = storage
        self._locks = locks or ActorLockRegistry()
        self._clock = clock
        self._id_factory = id_factory

    def commit(
        self,
        link: BookingLink,
        requester: Requester,
        window: TimeRange,
        *,
        replaces: Booking | None = None,
    ) -> CommitOutcome:
        """
        Run the full validation sequence and persist the booking.

        Args:
            link: Resolved booking link
            requester: Who is booking
            window: The chosen [start, end) instants
            replaces: Booking being rescheduled; its own slot does not block the new one

        Returns:
            CommitOutcome carrying the booking when committed, the error otherwise
        """
        try:
            self._validate(link, window)

            with self._locks.hold(link.pool.candidate_ids()):
                candidates = self._under_daily_cap(link, window, replaces)
                return self._reserve(link, requester, window, candidates, replaces)

        except (ConflictRejectedError, AssignmentError) as exc:
            return self._finish(link, window, CommitOutcome(CommitState.CONFLICT_REJECTED, error=exc))
        except StorageError as exc:
            error = PersistenceFailureError(f"Storage failed during commit: {exc}")
            error.__cause__ = exc
            return self._finish(link, window, CommitOutcome(CommitState.FAILED, error=error))
        except SlotbookerError as exc:
            return self._finish(link, window, CommitOutcome(CommitState.FAILED, error=exc))

    def _validate(self, link: BookingLink, window: TimeRange) -> None:
        """Steps 1 and 2."""
        meeting = link.meeting

        if not link.is_active:
            raise LinkInactiveError(f"Booking link '{link.id}' is inactive")

        duration_seconds = (window.end - window.start).total_seconds()
        if duration_seconds != meeting.duration_minutes * 60:
            raise DurationMismatchError(
                f"Window lasts {duration_seconds / 60:g} minutes, "
                f"link '{link.id}' requires {meeting.duration_minutes}"
            )

        earliest = self._clock().add(minutes=meeting.lead_time_minutes)
        if window.start < earliest:
            raise LeadTimeViolationError(
                f"Bookings must be made at least {meeting.lead_time_minutes} minutes in advance"
            )

    def _under_daily_cap(
        self,
        link: BookingLink,
        window: TimeRange,
        replaces: Booking | None,
    ) -> List[str]:
        """Step 3, called with every candidate's lock held. Returns the actors below the cap."""
        meeting = link.meeting
        candidates = list(link.pool.candidate_ids())

        if meeting.max_per_day > 0:
            candidates = [
                actor_id for actor_id in candidates
                if not self._daily_cap_reached(actor_id, window, meeting.max_per_day, replaces)
            ]
            if not candidates:
                raise DailyCapReachedError(
                    f"Maximum of {meeting.max_per_day} booking(s) for that day has been reached"
                )

        return candidates

    def _reserve(
        self,
        link: BookingLink,
        requester: Requester,
        window: TimeRange,
        candidates: List[str],
        replaces: Booking | None,
    ) -> CommitOutcome:
        """Steps 4 to 6, called with every candidate's lock held."""
        meeting = link.meeting
        replaced_id = replaces.id if replaces else None

        busy_sets: Dict[str, BusyIntervalSet] = {
            actor_id: self._load_busy(actor_id, window, meeting.buffer_before, meeting.buffer_after, replaced_id)
            for actor_id in candidates
        }

        if all(
            busy.overlaps(window, meeting.buffer_before, meeting.buffer_after)
            for busy in busy_sets.values()
        ):
            raise ConflictRejectedError(f"{window} is no longer available (including buffer time)")

        pool = replace(link.pool, actor_ids=tuple(candidates))
        actor_id = get_strategy(pool.method).select(
            window,
            pool,
            busy_sets,
            meeting,
            lambda candidate: self._count_link_bookings(link, candidate, replaces),
        )

        booking = Booking(
            id=self._id_factory(),
            link_id=link.id,
            actor_id=actor_id,
            time_range=window,
            requester=requester,
            buffer_before=meeting.buffer_before,
            buffer_after=meeting.buffer_after,
            created_at=self._clock(),
            replaces_id=replaced_id,
        )

        try:
            stored = self._storage.persist_booking(booking, replaces_id=replaced_id)
        except StorageConflictError as exc:
            raise ConflictRejectedError(f"{window} was taken by a concurrent booking") from exc

        try:
            self._storage.create_calendar_commitment(actor_id, window, stored.id)
        except StorageError as exc:
            logger.warning("Could not mirror booking %s onto calendar of %s: %s", stored.id, actor_id, exc)

        return self._finish(link, window, CommitOutcome(CommitState.COMMITTED, booking=stored))

    def _load_busy(
        self,
        actor_id: str,
        window: TimeRange,
        buffer_before: int,
        buffer_after: int,
        replaced_id: str | None,
    ) -> BusyIntervalSet:
        buffered = window.expand(buffer_before, buffer_after)
        commitments = self._storage.load_commitments(actor_id, buffered.start, buffered.end)
        return BusyIntervalSet(actor_id, commitments).without_booking(replaced_id)

    def _daily_cap_reached(
        self,
        actor_id: str,
        window: TimeRange,
        max_per_day: int,
        replaces: Booking | None,
    ) -> bool:
        _, zone_name = self._storage.load_policy(actor_id)
        day_start, day_end = local_day_bounds(window.start, zone_name)
        count = self._storage.count_confirmed_bookings(actor_id, day_start, day_end)

        if (
            replaces is not None
            and replaces.is_confirmed
            and replaces.actor_id == actor_id
            and day_start <= replaces.time_range.start < day_end
        ):
            count -= 1

        return count >= max_per_day

    def _count_link_bookings(self, link: BookingLink, actor_id: str, replaces: Booking | None) -> int:
        count = self._storage.count_confirmed_bookings(actor_id, link_id=link.id)
        if (
            replaces is not None
            and replaces.is_confirmed
            and replaces.actor_id == actor_id
            and replaces.link_id == link.id
        ):
            count -= 1
        return count

    @staticmethod
    def _finish(link: BookingLink, window: TimeRange, outcome: CommitOutcome) -> CommitOutcome:
        if outcome.committed:
            logger.info(
                "Committed booking %s on link %s for %s with host %s",
                outcome.booking.id, link.id, window, outcome.booking.actor_id,
            )
        else:
            logger.warning(
                "Commit on link %s for %s ended in %s: %s",
                link.id, window, outcome.state.value, outcome.error,
            )
        return outcome
