"""
Per-key critical sections.

Two callers holding the same key are serialized; callers with different keys
never wait on each other beyond the brief bookkeeping below. Lock entries are
reference-counted and dropped when the last holder leaves, so the table does
not grow with the number of payment ids ever seen.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List


class KeyedLock:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}
        self._waiters: Dict[str, int] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            self._waiters[key] = self._waiters.get(key, 0) + 1

        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                remaining = self._waiters[key] - 1
                if remaining:
                    self._waiters[key] = remaining
                else:
                    del self._waiters[key]
                    del self._locks[key]

    def active_keys(self) -> List[str]:
        """Keys currently held or waited on."""

        with self._guard:
            return list(self._locks)


__all__ = ["KeyedLock"]
