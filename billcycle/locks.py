from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class ScheduleLocks:
    """One mutex per billing schedule, created on first use.

    Generation and status changes for the same schedule run one at a time
    inside this process; different schedules never wait on each other.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[int, threading.Lock] = {}

    def _lock_for(self, schedule_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(schedule_id)
            if lock is None:
                lock = self._locks[schedule_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, schedule_id: int) -> Iterator[None]:
        lock = self._lock_for(schedule_id)
        with lock:
            yield

    def is_held(self, schedule_id: int) -> bool:
        with self._guard:
            lock = self._locks.get(schedule_id)
        return lock is not None and lock.locked()

    def discard(self, schedule_id: int) -> None:
        """Forget the mutex of a deleted schedule unless someone is holding it."""
        with self._guard:
            lock = self._locks.get(schedule_id)
            if lock is not None and not lock.locked():
                del self._locks[schedule_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


_default_locks = ScheduleLocks()


def get_schedule_locks() -> ScheduleLocks:
    """Process-wide registry shared by the batch job and manual requests."""
    return _default_locks
