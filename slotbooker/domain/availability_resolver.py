"""
Core business logic for resolving jointly available meeting windows.

Pure domain logic: busy intervals come in already loaded, nothing here
performs I/O, so resolution can run in parallel across requests.
"""

from typing import List, Mapping, Sequence

from pendulum import DateTime

from .busy_intervals import BusyIntervalSet
from .models import Actor, AvailableWindow, MeetingSpec, TimeRange
from .slot_generator import SlotGenerator


class AvailabilityResolver:
    """
    Intersects generated candidates with every actor's busy intervals.

    Algorithm:
    1. Generate candidates from the reference actor's working hours
    2. For each candidate, find the actors whose own working hours cover it
    3. Drop actors whose busy intervals hit the candidate plus its buffers
    4. Keep the candidate if all actors are free (require_all) or at least one is
    """

    def __init__(self, slot_generator: SlotGenerator | None = None):
        self.slot_generator = slot_generator or SlotGenerator()

    def resolve(
        self,
        actors: Sequence[Actor],
        busy_sets: Mapping[str, BusyIntervalSet],
        meeting: MeetingSpec,
        range_start: DateTime,
        range_end: DateTime,
        *,
        reference: Actor | None = None,
        require_all: bool = True,
        not_before: DateTime | None = None,
    ) -> List[AvailableWindow]:
        """
        Find all windows in which the required actors can meet.

        Args:
            actors: Actors to check, in pool order
            busy_sets: Busy intervals per actor id; missing actors count as free
            meeting: Duration and buffers of the requested meeting
            range_start: Start of the search period
            range_end: End of the search period
            reference: Actor whose policy and zone drive candidate generation;
                defaults to the first actor
            require_all: True for collective meetings, False for any-of pools
            not_before: Drop candidates starting before this instant

        Returns:
            Chronologically ordered AvailableWindow objects
        """
        if not actors:
            return []

        reference = reference or actors[0]

        candidates = self.slot_generator.generate(
            range_start=range_start,
            range_end=range_end,
            policy=reference.policy,
            duration_minutes=meeting.duration_minutes,
            zone_name=reference.timezone,
        )

        windows: List[AvailableWindow] = []

        for candidate in candidates:
            if not_before is not None and candidate.start < not_before:
                continue

            free_ids = [
                actor.id for actor in actors
                if self._is_free(actor, reference, candidate, busy_sets, meeting)
            ]

            if require_all and len(free_ids) != len(actors):
                continue
            if not free_ids:
                continue

            windows.append(AvailableWindow(time_range=candidate, actor_ids=tuple(free_ids)))

        return windows

    @staticmethod
    def _is_free(
        actor: Actor,
        reference: Actor,
        candidate: TimeRange,
        busy_sets: Mapping[str, BusyIntervalSet],
        meeting: MeetingSpec,
    ) -> bool:
        # The reference policy already bounded the candidate for its own actor.
        if actor.id != reference.id and not actor.policy.covers(
            candidate.start, candidate.end, actor.timezone
        ):
            return False

        busy = busy_sets.get(actor.id)
        if busy is None:
            return True

        return not busy.overlaps(candidate, meeting.buffer_before, meeting.buffer_after)
