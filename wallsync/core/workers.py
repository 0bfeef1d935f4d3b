"""Shared bounded worker pool and future composition helpers.

Every polling operation runs as an independent unit of work on the pool
and reports through a ``concurrent.futures.Future``.  The helpers here
compose those futures without blocking:

- ``then``: run a follow-up only after the first future succeeds.
- ``settle_all``: fan-in that waits for every future and never fails,
  substituting ``None`` for failed results.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")


class WorkerPool:
    """Bounded thread pool shared by every synchronization operation.

    Parameters
    ----------
    max_workers:
        Upper bound on concurrently running units of work.
    """

    def __init__(self, max_workers: int = 8) -> None:
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="wallsync"
        )
        self._shut_down = threading.Event()

    @property
    def is_shut_down(self) -> bool:
        return self._shut_down.is_set()

    def submit(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> Future[T]:
        """Schedule *fn* on the pool.

        Raises
        ------
        RuntimeError
            If the pool has been shut down.
        """
        if self.is_shut_down:
            raise RuntimeError("WorkerPool has been shut down")
        return self._executor.submit(fn, *args, **kwargs)

    def shutdown(self, wait: bool = False) -> None:
        """Stop accepting work and drop queued units that have not started."""
        self._shut_down.set()
        self._executor.shutdown(wait=wait, cancel_futures=True)
        logger.info("WorkerPool shut down (max_workers=%d).", self.max_workers)


def completed(value: T = None) -> Future[T]:
    """Return an already-successful future."""
    future: Future[T] = Future()
    future.set_result(value)
    return future


def failed(exc: BaseException) -> Future[Any]:
    """Return an already-failed future."""
    future: Future[Any] = Future()
    future.set_exception(exc)
    return future


def then(first: Future[T], follow: Callable[[T], Future[U]]) -> Future[U]:
    """Chain *follow* after *first* succeeds; a failure of either propagates."""
    result: Future[U] = Future()

    def _forward(inner: Future[U]) -> None:
        if inner.cancelled():
            result.cancel()
        elif inner.exception() is not None:
            result.set_exception(inner.exception())
        else:
            result.set_result(inner.result())

    def _on_first(done: Future[T]) -> None:
        if done.cancelled():
            result.cancel()
            return
        exc = done.exception()
        if exc is not None:
            result.set_exception(exc)
            return
        try:
            follow(done.result()).add_done_callback(_forward)
        except Exception as follow_exc:  # noqa: BLE001
            result.set_exception(follow_exc)

    first.add_done_callback(_on_first)
    return result


def settle_all(futures: Sequence[Future[T]]) -> Future[list[T | None]]:
    """Resolve once every future has settled, with ``None`` for failures.

    The returned future never fails; results keep the input order.
    """
    aggregate: Future[list[T | None]] = Future()
    if not futures:
        aggregate.set_result([])
        return aggregate

    results: list[T | None] = [None] * len(futures)
    remaining = [len(futures)]
    lock = threading.Lock()

    def _settle(index: int, done: Future[T]) -> None:
        if not done.cancelled() and done.exception() is None:
            results[index] = done.result()
        with lock:
            remaining[0] -= 1
            finished = remaining[0] == 0
        if finished:
            aggregate.set_result(results)

    for i, future in enumerate(futures):
        future.add_done_callback(lambda done, i=i: _settle(i, done))
    return aggregate
