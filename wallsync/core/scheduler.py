"""Polling scheduler: drives the engine's refresh operations on a cadence.

Three independent schedules run from one daemon thread:

- full catalog load (projects, then build types),
- queue membership of monitored build types,
- build status of every monitored build type.

The scheduler only starts operations; it never waits on their futures, so
a slow or hung fetch delays its own visible effect without holding back
the next cycle.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from wallsync.config import WallSyncConfig
    from wallsync.core.engine import SynchronizationEngine

logger = logging.getLogger(__name__)

_MIN_SLEEP_SECONDS = 0.05


class _Schedule:
    def __init__(self, name: str, interval: float, start: Callable[[], Future[Any]]) -> None:
        self.name = name
        self.interval = interval
        self.start = start
        self.next_due: float | None = None

    def is_due(self, now: float) -> bool:
        return self.next_due is None or now >= self.next_due


class PollingScheduler:
    """Runs catalog, queue and status refreshes at fixed intervals.

    Parameters
    ----------
    engine:
        The synchronization engine to drive.
    status_interval, queue_interval, catalog_interval:
        Seconds between successive runs of each schedule.
    clock:
        Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        engine: SynchronizationEngine,
        *,
        status_interval: float = 10.0,
        queue_interval: float = 10.0,
        catalog_interval: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._engine = engine
        self._clock = clock
        self._schedules = [
            _Schedule("catalog", catalog_interval, engine.load_catalog),
            _Schedule("queue", queue_interval, engine.refresh_queue_membership),
            _Schedule("status", status_interval, engine.refresh_monitored_statuses),
        ]
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @classmethod
    def from_config(
        cls, engine: SynchronizationEngine, config: WallSyncConfig
    ) -> PollingScheduler:
        return cls(
            engine,
            status_interval=config.status_poll_seconds,
            queue_interval=config.queue_poll_seconds,
            catalog_interval=config.catalog_poll_seconds,
        )

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def tick(self, now: float | None = None) -> dict[str, Future[Any]]:
        """Start every schedule that is due and return their futures by name."""
        now = self._clock() if now is None else now
        started: dict[str, Future[Any]] = {}
        for schedule in self._schedules:
            if not schedule.is_due(now):
                continue
            schedule.next_due = now + schedule.interval
            logger.debug("Starting %s refresh", schedule.name)
            started[schedule.name] = schedule.start()
        return started

    def _seconds_until_next(self) -> float:
        now = self._clock()
        pending = [s.next_due - now for s in self._schedules if s.next_due is not None]
        if not pending:
            return _MIN_SLEEP_SECONDS
        return max(min(pending), _MIN_SLEEP_SECONDS)

    def _run(self) -> None:
        logger.info("Polling scheduler started.")
        while not self._stop.is_set():
            if not self._engine.is_active:
                break
            self.tick()
            self._stop.wait(self._seconds_until_next())
        logger.info("Polling scheduler stopped.")

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="wallsync-scheduler", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """Stop scheduling.  In-flight operations are left to settle on their own."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
