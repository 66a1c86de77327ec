"""Per-spot exclusive access."""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from ..errors import SpotBusy
from ..metrics import record_lock_wait

logger = logging.getLogger(__name__)


class SpotLockRegistry:
    """
    Maps spot numbers to mutexes, created on first use.

    Locks are per spot, so operations on different spots never wait on
    each other. Several spots are always acquired in sorted order.
    """

    def __init__(self, timeout_seconds: float = 5.0, record_metrics: bool = True):
        if timeout_seconds <= 0:
            raise ValueError("Lock timeout must be positive")
        self.timeout_seconds = timeout_seconds
        self.record_metrics = record_metrics
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, spot_number: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(spot_number)
            if lock is None:
                lock = self._locks[spot_number] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, *spot_numbers: str, timeout: Optional[float] = None) -> Iterator[None]:
        """
        Hold exclusive access to one or more spots for the ``with`` block.

        Args:
            spot_numbers: Spots to lock; duplicates are ignored
            timeout: Seconds to wait in total, defaults to ``timeout_seconds``

        Raises:
            SpotBusy: If a lock is not obtained in time. Nothing is held
                when this is raised.
        """
        timeout = self.timeout_seconds if timeout is None else timeout
        deadline = time.monotonic() + timeout
        acquired: list[threading.Lock] = []
        started = time.perf_counter()

        try:
            for spot_number in sorted(set(spot_numbers)):
                lock = self._lock_for(spot_number)
                remaining = deadline - time.monotonic()
                if remaining <= 0 or not lock.acquire(timeout=remaining):
                    logger.warning(f"Timed out waiting for lock on spot '{spot_number}'")
                    raise SpotBusy(spot_number, timeout)
                acquired.append(lock)
                logger.debug(f"Acquired lock on spot '{spot_number}'")

            if self.record_metrics:
                record_lock_wait(time.perf_counter() - started)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    def is_locked(self, spot_number: str) -> bool:
        """Whether some caller currently holds the spot's lock."""
        with self._guard:
            lock = self._locks.get(spot_number)
        return lock is not None and lock.locked()


    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
