"""
Shared fixtures: an in-memory store with three actors and a fixed clock.
"""

import pendulum
import pytest

from slotbooker.adapters.memory_storage import InMemoryStorage
from slotbooker.domain.models import (
    Actor,
    AssignmentMethod,
    AssignmentPool,
    BookingLink,
    MeetingSpec,
)
from slotbooker.domain.working_hours import WorkingHoursPolicy


@pytest.fixture
def now():
    """Monday 2024-11-25, 09:00 in Berlin."""
    return pendulum.datetime(2024, 11, 25, 8, 0, tz="UTC")


@pytest.fixture
def clock(now):
    return lambda: now


@pytest.fixture
def storage():
    storage = InMemoryStorage()
    storage.add_actor(Actor(id="anna", timezone="Europe/Berlin", policy=WorkingHoursPolicy.default()))
    storage.add_actor(Actor(id="ben", timezone="America/New_York", policy=WorkingHoursPolicy.default()))
    storage.add_actor(Actor(id="chloe", timezone="Europe/Berlin", policy=WorkingHoursPolicy.default()))
    return storage


@pytest.fixture
def make_link():
    """Factory for booking links; the first actor is the owner."""

    def _make_link(
        actor_ids=("anna",),
        method=AssignmentMethod.FIXED,
        link_id="intro",
        is_active=True,
        availability_override=None,
        availability_window_days=30,
        **meeting,
    ) -> BookingLink:
        meeting.setdefault("duration_minutes", 30)
        meeting.setdefault("timezone", "Europe/Berlin")

        if method is AssignmentMethod.FIXED:
            pool = AssignmentPool(actor_ids=(actor_ids[0],), fixed_actor_id=actor_ids[0])
        else:
            pool = AssignmentPool(actor_ids=tuple(actor_ids), method=method)

        return BookingLink(
            id=link_id,
            owner_id=actor_ids[0],
            meeting=MeetingSpec(**meeting),
            pool=pool,
            availability_override=availability_override,
            availability_window_days=availability_window_days,
            is_active=is_active,
            title=link_id,
        )

    return _make_link
