"""
Per-actor collection of busy intervals with buffered overlap queries.
"""

from bisect import bisect_left
from typing import Iterable, Iterator, List, Optional

from pendulum import DateTime

from .models import Commitment, TimeRange


class BusyIntervalSet:
    """
    Commitments for one actor, kept sorted by start.

    Buffers are meeting-specific, so they are applied to the candidate at query
    time and never stored on the commitments themselves.
    """

    def __init__(self, actor_id: str, commitments: Iterable[Commitment] = ()):
        self.actor_id = actor_id
        self._commitments: List[Commitment] = sorted(
            commitments,
            key=lambda c: (c.time_range.start, c.time_range.end),
        )
        self._starts: List[DateTime] = [c.time_range.start for c in self._commitments]
        # Running maximum of end times lets overlap scans stop early.
        self._max_ends: List[DateTime] = []
        for commitment in self._commitments:
            end = commitment.time_range.end
            self._max_ends.append(max(self._max_ends[-1], end) if self._max_ends else end)

    def __len__(self) -> int:
        return len(self._commitments)

    def __iter__(self) -> Iterator[Commitment]:
        return iter(self._commitments)

    def without_booking(self, booking_id: Optional[str]) -> "BusyIntervalSet":
        """Return a copy that ignores the commitment mirroring one booking."""
        if booking_id is None:
            return self
        return BusyIntervalSet(
            self.actor_id,
            (c for c in self._commitments if c.booking_id != booking_id),
        )

    def conflicts(
        self,
        candidate: TimeRange,
        buffer_before: int = 0,
        buffer_after: int = 0,
    ) -> List[Commitment]:
        """
        Return every commitment that intersects the buffered candidate.

        Intervals are half-open: [a, b) and [c, d) overlap iff a < d and b > c,
        so back-to-back meetings without buffers do not conflict.
        """
        buffered = candidate.expand(buffer_before, buffer_after)

        # Only commitments starting before the buffered end can intersect.
        upper = bisect_left(self._starts, buffered.end)

        hits: List[Commitment] = []
        for index in range(upper - 1, -1, -1):
            if self._max_ends[index] <= buffered.start:
                break
            commitment = self._commitments[index]
            if commitment.time_range.overlaps(buffered):
                hits.append(commitment)

        hits.reverse()
        return hits

    def overlaps(
        self,
        candidate: TimeRange,
        buffer_before: int = 0,
        buffer_after: int = 0,
    ) -> bool:
        """Check whether the candidate, widened by its buffers, hits any commitment."""
        return bool(self.conflicts(candidate, buffer_before, buffer_after))
