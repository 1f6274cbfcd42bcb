"""
Process-local mutual exclusion for mutating admin operations.

Each mutating contract holds the guard for the tournament (or, for
cross-tournament work such as league recompute, the season) across its
read-decide-write-commit sequence. Acquire tournament guards before season
guards to keep a single lock order.
"""
import threading
import weakref
from contextlib import contextmanager
from typing import Hashable, Iterator


class KeyedLocks:
    """One RLock per key, alive only while some caller holds or waits on it."""

    def __init__(self) -> None:
        self._registry_lock = threading.Lock()
        self._locks: "weakref.WeakValueDictionary[Hashable, threading.RLock]" = weakref.WeakValueDictionary()

    def _lock_for(self, key: Hashable) -> threading.RLock:
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    def __len__(self) -> int:
        return len(self._locks)

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        lock = self._lock_for(key)
        with lock:
            yield


_locks = KeyedLocks()


def tournament_guard(tournament_id: int):
    return _locks.hold(("tournament", tournament_id))


def season_guard(season_id: int):
    return _locks.hold(("season", season_id))


def lock_sync_guard():
    return _locks.hold(("lock-sync",))
