"""
Candidate window generation on a fixed local-time grid.
"""

from typing import Iterator

from pendulum import DateTime

from .models import TimeRange
from .timezone_math import get_zone, to_instant, to_wall_clock
from .working_hours import WorkingHoursPolicy

SLOT_STEP_MINUTES = 30


class SlotGenerator:
    """
    Produces fixed-duration candidate windows inside working hours.

    Algorithm:
    1. Walk every local calendar day between the range bounds (inclusive)
    2. Skip days whose weekday is disabled
    3. Step from the day's start to its end in 30-minute increments of local time
    4. Emit a candidate whenever step + duration fits before the day's end
    5. Convert the start to an instant on its own date and add the duration in
       absolute time, so every candidate lasts exactly ``duration`` across DST
       changes; candidates whose local end passes the day's end are dropped

    Generation is lazy and deterministic: iterating the same generator twice
    yields the same candidates.
    """

    def __init__(self, step_minutes: int = SLOT_STEP_MINUTES):
        if step_minutes <= 0:
            raise ValueError("step_minutes must be greater than zero")
        self.step_minutes = step_minutes

    def generate(
        self,
        range_start: DateTime,
        range_end: DateTime,
        policy: WorkingHoursPolicy,
        duration_minutes: int,
        zone_name: str,
    ) -> "CandidateSequence":
        """
        Generate candidate windows for ``[range_start, range_end]``.

        Args:
            range_start: First instant of the search range
            range_end: Last instant of the search range
            policy: Working hours that bound each day
            duration_minutes: Length of each candidate
            zone_name: Zone in which days and working hours are evaluated

        Returns:
            A re-iterable sequence of TimeRange candidates in chronological order
        """
        if duration_minutes <= 0:
            raise ValueError("duration_minutes must be greater than zero")

        get_zone(zone_name)

        return CandidateSequence(
            generator=self,
            range_start=range_start,
            range_end=range_end,
            policy=policy,
            duration_minutes=duration_minutes,
            zone_name=zone_name,
        )

    def _iter_candidates(
        self,
        range_start: DateTime,
        range_end: DateTime,
        policy: WorkingHoursPolicy,
        duration_minutes: int,
        zone_name: str,
    ) -> Iterator[TimeRange]:
        current_day = to_wall_clock(range_start, zone_name).date()
        last_day = to_wall_clock(range_end, zone_name).date()
        previous_start: DateTime | None = None

        while current_day <= last_day:
            window = policy.window_for(current_day)

            if window:
                day_start, day_end = window
                step = day_start

                while step.add(minutes=duration_minutes) <= day_end:
                    start = to_instant(step, zone_name)
                    end = start.add(minutes=duration_minutes)

                    # Skipped local times can collapse onto an earlier instant.
                    if (previous_start is None or start > previous_start) and (
                        to_wall_clock(end, zone_name) <= day_end
                    ):
                        yield TimeRange(start=start, end=end)
                        previous_start = start

                    step = step.add(minutes=self.step_minutes)

            current_day = current_day.add(days=1)


class CandidateSequence:
    """Finite, restartable view over generated candidates."""

    def __init__(self, *, generator: SlotGenerator, **params):
        self._generator = generator
        self._params = params

    def __iter__(self) -> Iterator[TimeRange]:
        return self._generator._iter_candidates(**self._params)
