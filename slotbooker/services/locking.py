"""
Per-actor mutual exclusion for the commit critical section.
"""

from contextlib import ExitStack, contextmanager
from threading import Lock
from typing import Dict, Iterable, Iterator


class ActorLockRegistry:
    """
    Hands out one lock per actor id.

    Several actors are always locked in sorted id order, so two commits over
    overlapping pools cannot deadlock. Commits for disjoint actors never wait
    on each other.
    """

    def __init__(self):
        self._locks: Dict[str, Lock] = {}
        self._registry_lock = Lock()

    def _lock_for(self, actor_id: str) -> Lock:
        with self._registry_lock:
            lock = self._locks.get(actor_id)
            if lock is None:
                lock = self._locks[actor_id] = Lock()
            return lock

    @contextmanager
    def hold(self, actor_ids: Iterable[str]) -> Iterator[None]:
        """Hold the locks of every listed actor for the duration of the block."""
        with ExitStack() as stack:
            for actor_id in sorted(set(actor_ids)):
                stack.enter_context(self._lock_for(actor_id))
            yield
