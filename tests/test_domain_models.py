"""
Tests for domain models.
"""

from datetime import time

import pendulum
import pytest

from slotbooker.domain.exceptions import InvalidPolicyError
from slotbooker.domain.models import (
    AssignmentMethod,
    AssignmentPool,
    AvailableWindow,
    Booking,
    BookingStatus,
    MeetingSpec,
    Requester,
    TimeRange,
)
from slotbooker.domain.working_hours import WorkingDay, WorkingHoursPolicy, parse_clock


class TestTimeRange:
    """Tests for TimeRange model."""

    def test_create_valid_time_range(self):
        """Test creating a valid time range."""
        start = pendulum.parse("2024-11-25 09:00", tz="Europe/Berlin")
        end = pendulum.parse("2024-11-25 17:00", tz="Europe/Berlin")

        tr = TimeRange(start=start, end=end)

        assert tr.start == start
        assert tr.end == end
        assert tr.duration_minutes() == 480  # 8 hours

    def test_invalid_time_range_raises_error(self):
        """Test that creating an invalid time range raises ValueError."""
        start = pendulum.parse("2024-11-25 17:00", tz="Europe/Berlin")
        end = pendulum.parse("2024-11-25 09:00", tz="Europe/Berlin")

        with pytest.raises(ValueError, match="Start time .* must be before end time"):
            TimeRange(start=start, end=end)

    def test_overlaps_is_half_open(self):
        """Adjacent ranges do not overlap."""
        tr1 = TimeRange(
            start=pendulum.parse("2024-11-25 09:00", tz="Europe/Berlin"),
            end=pendulum.parse("2024-11-25 12:00", tz="Europe/Berlin")
        )
        tr2 = TimeRange(
            start=pendulum.parse("2024-11-25 11:00", tz="Europe/Berlin"),
            end=pendulum.parse("2024-11-25 14:00", tz="Europe/Berlin")
        )
        tr3 = TimeRange(
            start=pendulum.parse("2024-11-25 12:00", tz="Europe/Berlin"),
            end=pendulum.parse("2024-11-25 17:00", tz="Europe/Berlin")
        )

        assert tr1.overlaps(tr2)
        assert tr2.overlaps(tr1)
        assert not tr1.overlaps(tr3)

    def test_intersect(self):
        """Test intersection calculation."""
        tr1 = TimeRange(
            start=pendulum.parse("2024-11-25 09:00", tz="Europe/Berlin"),
            end=pendulum.parse("2024-11-25 12:00", tz="Europe/Berlin")
        )
        tr2 = TimeRange(
            start=pendulum.parse("2024-11-25 11:00", tz="Europe/Berlin"),
            end=pendulum.parse("2024-11-25 14:00", tz="Europe/Berlin")
        )

        intersection = tr1.intersect(tr2)

        assert intersection is not None
        assert intersection.start == pendulum.parse("2024-11-25 11:00", tz="Europe/Berlin")
        assert intersection.end == pendulum.parse("2024-11-25 12:00", tz="Europe/Berlin")

    def test_expand(self):
        """Buffers widen the range on each side independently."""
        tr = TimeRange(
            start=pendulum.parse("2024-11-25 10:00", tz="UTC"),
            end=pendulum.parse("2024-11-25 10:30", tz="UTC")
        )

        expanded = tr.expand(before_minutes=10, after_minutes=15)

        assert expanded.start == pendulum.parse("2024-11-25 09:50", tz="UTC")
        assert expanded.end == pendulum.parse("2024-11-25 10:45", tz="UTC")


class TestMeetingSpec:
    """Tests for MeetingSpec validation."""

    def test_defaults(self):
        meeting = MeetingSpec(duration_minutes=30)

        assert meeting.buffer_before == 0
        assert meeting.max_per_day == 0

    def test_zero_duration_rejected(self):
        with pytest.raises(ValueError, match="duration_minutes"):
            MeetingSpec(duration_minutes=0)

    def test_negative_buffer_rejected(self):
        with pytest.raises(ValueError, match="negative"):
            MeetingSpec(duration_minutes=30, buffer_after=-5)


class TestAssignmentPool:
    """Tests for AssignmentPool."""

    def test_fixed_pool_candidates(self):
        pool = AssignmentPool(actor_ids=("anna",), method=AssignmentMethod.FIXED, fixed_actor_id="anna")

        assert pool.is_single_host
        assert pool.candidate_ids() == ("anna",)

    def test_team_pool_candidates_keep_order(self):
        pool = AssignmentPool(actor_ids=("chloe", "anna"), method=AssignmentMethod.POOLED)

        assert not pool.is_single_host
        assert pool.candidate_ids() == ("chloe", "anna")

    def test_fixed_pool_requires_actor(self):
        with pytest.raises(ValueError, match="designated"):
            AssignmentPool(actor_ids=("anna",), method=AssignmentMethod.FIXED)

    def test_duplicate_actors_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            AssignmentPool(actor_ids=("anna", "anna"), method=AssignmentMethod.POOLED)


class TestBooking:
    """Tests for Booking."""

    def test_buffered_range_and_status(self):
        booking = Booking(
            id="b1",
            link_id="intro",
            actor_id="anna",
            time_range=TimeRange(
                start=pendulum.parse("2024-11-25 10:00", tz="UTC"),
                end=pendulum.parse("2024-11-25 10:30", tz="UTC"),
            ),
            requester=Requester(name="Ada", email="ada@example.com"),
            buffer_after=15,
        )

        cancelled = booking.with_status(BookingStatus.CANCELLED)

        assert booking.is_confirmed
        assert booking.buffered_range().end == pendulum.parse("2024-11-25 10:45", tz="UTC")
        assert not cancelled.is_confirmed
        assert cancelled.id == booking.id

    def test_available_window_display(self):
        window = AvailableWindow(
            time_range=TimeRange(
                start=pendulum.parse("2024-11-25 08:00", tz="UTC"),
                end=pendulum.parse("2024-11-25 08:30", tz="UTC"),
            ),
            actor_ids=("anna",),
        )

        assert window.format_display("Europe/Berlin") == "Monday, 2024-11-25 | 09:00 - 09:30 (30 min)"


class TestWorkingHoursPolicy:
    """Tests for WorkingHoursPolicy model."""

    def test_parse_clock(self):
        assert parse_clock("09:30") == time(9, 30)

    @pytest.mark.parametrize("value", ["9", "24:00", "12:60", "ab:cd", ""])
    def test_parse_clock_rejects_invalid(self, value):
        with pytest.raises(InvalidPolicyError):
            parse_clock(value)

    def test_cross_midnight_rejected_at_configuration(self):
        """A day ending before it starts fails when the policy is built."""
        with pytest.raises(InvalidPolicyError, match="cross-midnight"):
            WorkingDay.from_strings(True, "22:00", "02:00")

    def test_disabled_day_may_have_any_hours(self):
        day = WorkingDay.from_strings(False, "22:00", "02:00")

        assert not day.enabled

    def test_default_policy(self):
        """Default is Monday to Friday, 09:00-17:00."""
        policy = WorkingHoursPolicy.default()

        assert not policy.for_weekday(0).enabled  # Sunday
        assert policy.for_weekday(1).enabled
        assert not policy.for_weekday(6).enabled  # Saturday

    def test_is_within(self):
        policy = WorkingHoursPolicy.default()

        assert policy.is_within(pendulum.naive(2024, 11, 25, 9, 0))  # Monday
        assert not policy.is_within(pendulum.naive(2024, 11, 25, 17, 0))
        assert not policy.is_within(pendulum.naive(2024, 11, 23, 10, 0))  # Saturday

    def test_window_for_disabled_day(self):
        policy = WorkingHoursPolicy.default()

        assert policy.window_for(pendulum.date(2024, 11, 23)) is None

    def test_window_for_enabled_day(self):
        policy = WorkingHoursPolicy.uniform([1], "09:30", "17:00")

        start, end = policy.window_for(pendulum.date(2024, 11, 25))

        assert start == pendulum.naive(2024, 11, 25, 9, 30)
        assert end == pendulum.naive(2024, 11, 25, 17, 0)

    def test_from_mapping_fills_missing_days(self):
        policy = WorkingHoursPolicy.from_mapping({6: WorkingDay.from_strings(True, "10:00", "12:00")})

        assert policy.for_weekday(6).enabled
        assert policy.for_weekday(1).start == time(9, 0)

    def test_uniform_rejects_bad_weekday(self):
        with pytest.raises(InvalidPolicyError, match="between 0 and 6"):
            WorkingHoursPolicy.uniform([7], "09:00", "17:00")

    def test_covers(self):
        """Coverage is evaluated in the actor's zone."""
        policy = WorkingHoursPolicy.default()
        start = pendulum.parse("2024-11-25 16:30", tz="UTC")

        assert policy.covers(start, start.add(minutes=30), "America/New_York")  # 11:30
        assert not policy.covers(start, start.add(minutes=30), "Europe/Berlin")  # 17:30
