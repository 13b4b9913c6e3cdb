"""
Host assignment strategies used at booking-commit time.

Each strategy re-checks the exact chosen window against the busy intervals it
is given, independently of any earlier availability pass.
"""

from typing import Callable, Dict, Mapping, Protocol

from .busy_intervals import BusyIntervalSet
from .exceptions import ActorUnavailableError, NoActorAvailableError
from .models import AssignmentMethod, AssignmentPool, MeetingSpec, TimeRange

BookingCounter = Callable[[str], int]


def _is_free(
    actor_id: str,
    window: TimeRange,
    busy_sets: Mapping[str, BusyIntervalSet],
    meeting: MeetingSpec,
) -> bool:
    busy = busy_sets.get(actor_id)
    return busy is None or not busy.overlaps(window, meeting.buffer_before, meeting.buffer_after)


class AssignmentStrategy(Protocol):
    """Picks exactly one host for a window."""

    def select(
        self,
        window: TimeRange,
        pool: AssignmentPool,
        busy_sets: Mapping[str, BusyIntervalSet],
        meeting: MeetingSpec,
        count_bookings: BookingCounter,
    ) -> str:
        """Return the chosen actor id or raise an AssignmentError."""


class FixedAssignment:
    """Always the designated actor, provided they are free."""

    def select(
        self,
        window: TimeRange,
        pool: AssignmentPool,
        busy_sets: Mapping[str, BusyIntervalSet],
        meeting: MeetingSpec,
        count_bookings: BookingCounter,
    ) -> str:
        actor_id = pool.fixed_actor_id
        if actor_id is None or not _is_free(actor_id, window, busy_sets, meeting):
            raise ActorUnavailableError(f"Actor '{actor_id}' is not free for {window}")
        return actor_id


class FirstAvailableAssignment:
    """First actor in pool order whose calendar is clear for the window."""

    def select(
        self,
        window: TimeRange,
        pool: AssignmentPool,
        busy_sets: Mapping[str, BusyIntervalSet],
        meeting: MeetingSpec,
        count_bookings: BookingCounter,
    ) -> str:
        for actor_id in pool.actor_ids:
            if _is_free(actor_id, window, busy_sets, meeting):
                return actor_id

        raise NoActorAvailableError(f"No actor in the pool is free for {window}")


class FewestBookingsAssignment:
    """
    Round robin without a cursor: the free actor with the fewest confirmed
    bookings on the link wins, ties going to the earlier pool entry.
    """

    def select(
        self,
        window: TimeRange,
        pool: AssignmentPool,
        busy_sets: Mapping[str, BusyIntervalSet],
        meeting: MeetingSpec,
        count_bookings: BookingCounter,
    ) -> str:
        free_ids = [
            actor_id for actor_id in pool.actor_ids
            if _is_free(actor_id, window, busy_sets, meeting)
        ]
        if not free_ids:
            raise NoActorAvailableError(f"No actor in the pool is free for {window}")

        counts = {actor_id: count_bookings(actor_id) for actor_id in free_ids}

        # min() keeps the first of equal keys, which preserves pool order on ties.
        return min(free_ids, key=lambda actor_id: counts[actor_id])


STRATEGIES: Dict[AssignmentMethod, AssignmentStrategy] = {
    AssignmentMethod.FIXED: FixedAssignment(),
    AssignmentMethod.POOLED: FirstAvailableAssignment(),
    AssignmentMethod.ROUND_ROBIN: FewestBookingsAssignment(),
}


def get_strategy(method: AssignmentMethod) -> AssignmentStrategy:
    """Look up the strategy for an assignment method."""
    return STRATEGIES[AssignmentMethod(method)]
