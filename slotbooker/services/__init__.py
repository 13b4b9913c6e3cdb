"""
Service layer helpers that orchestrate storage and domain logic.
"""

from .booking_committer import BookingCommitter, CommitOutcome, CommitState
from .locking import ActorLockRegistry
from .protocols import SchedulingStorageProtocol
from .scheduling_engine import SchedulingEngine

__all__ = [
    "ActorLockRegistry",
    "BookingCommitter",
    "CommitOutcome",
    "CommitState",
    "SchedulingEngine",
    "SchedulingStorageProtocol",
]
