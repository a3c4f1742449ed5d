"""Per-entity exclusive sections for ledger writers."""

import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Hashable, Iterator


class KeyedLocks:
    """
    Registry of one re-entrant lock per entity key.

    Writers touching the same asset (or the same period) are serialized;
    writers on different entities never block each other.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: defaultdict[Hashable, threading.RLock] = defaultdict(threading.RLock)

    def _lock_for(self, key: Hashable) -> threading.RLock:
        with self._guard:
            return self._locks[key]

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        """Hold the exclusive section for `key` for the duration of the block."""
        lock = self._lock_for(key)
        with lock:
            yield


# Process-wide registries; the services share them so that separate
# service instances (one per request) still serialize on the same entity.
asset_locks = KeyedLocks()
period_locks = KeyedLocks()
