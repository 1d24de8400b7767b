"""Per-path mutual exclusion for working copy reconciliation."""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator

logger = logging.getLogger(__name__)


class PathLocks:
    """Exclusive locks keyed by resolved local path.

    Distinct paths never contend; a second caller for the same path blocks
    until the first reconciliation finishes. A path's lock is dropped from
    the registry once nobody holds or waits for it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[Path, threading.Lock] = {}
        self._users: Dict[Path, int] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _checkout(self, key: Path) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _checkin(self, key: Path) -> None:
        with self._guard:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    @contextmanager
    def hold(self, path: Path) -> Iterator[None]:
        key = Path(path).resolve()
        lock = self._checkout(key)
        try:
            if not lock.acquire(blocking=False):
                logger.debug(f"Waiting for lock on {path}")
                lock.acquire()
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(key)


# Shared by engines that do not bring their own
default_locks = PathLocks()
