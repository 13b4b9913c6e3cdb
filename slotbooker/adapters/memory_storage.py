"""
In-memory storage collaborator.

Holds actors, calendar events, manual time blocks and bookings in process
memory. Calendar events can be seeded from a JSON file, which makes the store
usable for the CLI and for tests without a database.
"""

from __future__ import annotations

import json
import logging
from collections import defaultdict
from pathlib import Path
from threading import RLock
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

import pendulum
from pendulum import DateTime

from ..domain.exceptions import NotFoundError, StorageConflictError, StorageError
from ..domain.models import (
    Actor,
    Booking,
    BookingStatus,
    Commitment,
    CommitmentSource,
    TimeRange,
)
from ..domain.working_hours import WorkingHoursPolicy

if TYPE_CHECKING:
    from ..config import EngineConfig

logger = logging.getLogger(__name__)


class InMemoryStorage:
    """
    Thread-safe storage implementing ``SchedulingStorageProtocol``.

    A confirmed booking is busy for its window widened by the buffers it was
    booked with. Calendar events mirrored from bookings are not returned
    separately; the booking's status decides whether the time is busy.
    """

    def __init__(self):
        self._lock = RLock()
        self._actors: Dict[str, Actor] = {}
        self._events: Dict[str, List[Commitment]] = defaultdict(list)
        self._bookings: Dict[str, Booking] = {}

    @classmethod
    def from_config(cls, config: "EngineConfig") -> "InMemoryStorage":
        """Build a store holding every configured actor, their time blocks and calendar file."""
        storage = cls()

        for actor_config in config.actors:
            storage.add_actor(actor_config.to_actor())
            for block in actor_config.time_blocks:
                storage.add_commitment(actor_config.id, block.to_commitment())

        if config.calendar_file:
            storage.load_calendar_file(config.calendar_file)

        return storage

    def add_actor(self, actor: Actor) -> None:
        with self._lock:
            self._actors[actor.id] = actor

    def add_commitment(self, actor_id: str, commitment: Commitment) -> None:
        with self._lock:
            self._require_actor(actor_id)
            self._events[actor_id].append(commitment)

    def load_calendar_file(self, path: Path) -> int:
        """
        Load calendar events from a JSON file.

        The file holds a list of objects with ``actorId``, ``start`` and ``end``
        (ISO 8601). Events for unknown actors or with unparsable times are
        skipped with a warning.

        Returns:
            Number of events loaded
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                events = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageError(f"Could not read calendar file {path}: {exc}") from exc

        if not isinstance(events, list):
            raise StorageError(f"Calendar file {path} must contain a list of events")

        loaded = 0
        for event in events:
            try:
                actor_id = event["actorId"]
                time_range = TimeRange(
                    start=pendulum.parse(event["start"], tz="UTC"),
                    end=pendulum.parse(event["end"], tz="UTC"),
                )
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping invalid calendar event %r: %s", event, exc)
                continue

            try:
                self.add_commitment(actor_id, Commitment(time_range=time_range, source=CommitmentSource.CALENDAR))
            except NotFoundError:
                logger.warning("Skipping calendar event for unknown actor %s", actor_id)
                continue

            loaded += 1

        return loaded

    def load_policy(self, actor_id: str) -> Tuple[WorkingHoursPolicy, str]:
        actor = self._require_actor(actor_id)
        return actor.policy, actor.timezone

    def load_commitments(
        self,
        actor_id: str,
        range_start: DateTime,
        range_end: DateTime,
    ) -> List[Commitment]:
        window = TimeRange(start=range_start, end=range_end)

        with self._lock:
            self._require_actor(actor_id)

            commitments = [
                event for event in self._events[actor_id]
                if event.booking_id is None and event.time_range.overlaps(window)
            ]

            for booking in self._bookings.values():
                if booking.actor_id != actor_id or not booking.is_confirmed:
                    continue
                busy = booking.buffered_range()
                if busy.overlaps(window):
                    commitments.append(
                        Commitment(time_range=busy, source=CommitmentSource.BOOKING, booking_id=booking.id)
                    )

        return commitments

    def count_confirmed_bookings(
        self,
        actor_id: str,
        range_start: Optional[DateTime] = None,
        range_end: Optional[DateTime] = None,
        *,
        link_id: Optional[str] = None,
    ) -> int:
        with self._lock:
            return sum(
                1 for booking in self._bookings.values()
                if booking.is_confirmed
                and booking.actor_id == actor_id
                and (link_id is None or booking.link_id == link_id)
                and (range_start is None or booking.time_range.start >= range_start)
                and (range_end is None or booking.time_range.start < range_end)
            )

    def persist_booking(self, booking: Booking, *, replaces_id: Optional[str] = None) -> Booking:
        """Insert a booking unless its buffered window overlaps a confirmed one."""
        with self._lock:
            if booking.id in self._bookings:
                raise StorageError(f"Booking {booking.id} already exists")

            busy = booking.buffered_range()
            for existing in self._bookings.values():
                if (
                    existing.is_confirmed
                    and existing.actor_id == booking.actor_id
                    and existing.id != replaces_id
                    and existing.buffered_range().overlaps(busy)
                ):
                    raise StorageConflictError(
                        f"Booking {booking.id} overlaps confirmed booking {existing.id}"
                    )

            if replaces_id is not None:
                replaced = self._require_booking(replaces_id)
                self._bookings[replaces_id] = replaced.with_status(BookingStatus.RESCHEDULED)

            self._bookings[booking.id] = booking
            return booking

    def create_calendar_commitment(self, actor_id: str, window: TimeRange, booking_id: str) -> None:
        self.add_commitment(
            actor_id,
            Commitment(time_range=window, source=CommitmentSource.CALENDAR, booking_id=booking_id),
        )

    def get_booking(self, booking_id: str) -> Booking:
        with self._lock:
            return self._require_booking(booking_id)

    def update_booking_status(self, booking_id: str, status: BookingStatus) -> Booking:
        with self._lock:
            updated = self._require_booking(booking_id).with_status(status)
            self._bookings[booking_id] = updated
            return updated

    def list_bookings(self, link_id: Optional[str] = None) -> List[Booking]:
        """All bookings in creation order, optionally for one link."""
        with self._lock:
            return [
                booking for booking in self._bookings.values()
                if link_id is None or booking.link_id == link_id
            ]

    def calendar_events(self, actor_id: str) -> List[Commitment]:
        """Raw calendar entries of an actor, including mirrored bookings."""
        with self._lock:
            return list(self._events[actor_id])

    def _require_actor(self, actor_id: str) -> Actor:
        actor = self._actors.get(actor_id)
        if actor is None:
            raise NotFoundError(f"Unknown actor: {actor_id}")
        return actor

    def _require_booking(self, booking_id: str) -> Booking:
        booking = self._bookings.get(booking_id)
        if booking is None:
            raise NotFoundError(f"Unknown booking: {booking_id}")
        return booking
