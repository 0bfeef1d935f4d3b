"""Failure suppression: temporarily ignore builds whose detail fetch keeps failing.

Each failure resets the entry's expiry, so a build that keeps failing stays
suppressed continuously and becomes eligible again exactly one window after
its last failure.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

FAILURE_THRESHOLD = 2
SUPPRESSION_WINDOW_SECONDS = 20 * 60


@dataclass
class _FailureEntry:
    count: int
    expires_at: float


class FailureSuppressionCache:
    """Thread-safe, time-windowed failure counter keyed by build id.

    Parameters
    ----------
    threshold:
        Number of consecutive failures after which a build is ignored.
    window_seconds:
        How long an entry lives after its most recent failure.
    clock:
        Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        threshold: int = FAILURE_THRESHOLD,
        window_seconds: float = SUPPRESSION_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.threshold = threshold
        self.window_seconds = window_seconds
        self._clock = clock
        self._entries: dict[int, _FailureEntry] = {}
        self._lock = threading.Lock()

    def record_failure(self, build_id: int) -> int:
        """Count one more failure for *build_id* and return the new count."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(build_id)
            count = 1 if entry is None or entry.expires_at <= now else entry.count + 1
            self._entries[build_id] = _FailureEntry(
                count=count, expires_at=now + self.window_seconds
            )
            return count

    def failure_count(self, build_id: int) -> int:
        """Current live failure count for *build_id* (0 once expired)."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(build_id)
            if entry is None or entry.expires_at <= now:
                return 0
            return entry.count

    def should_ignore(self, build_id: int) -> bool:
        """Return ``True`` while *build_id* has reached the failure threshold."""
        return self.failure_count(build_id) >= self.threshold

    def sweep(self) -> int:
        """Evict expired entries.  Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.expires_at <= now]
            for build_id in expired:
                del self._entries[build_id]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
