from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from threading import Lock
from typing import Callable, Iterable, Optional, TypeVar

from .logging_utils import _scraper_event

T = TypeVar("T")
R = TypeVar("R")


class BatchExecutor:
    """
    Bounded thread pool for per-zone fetches.

    - At most ``max_workers`` calls are in flight; submission blocks on a
      semaphore so no work queues up behind the pool.
    - Setting ``cancel_event`` stops new dispatch; in-flight calls finish.
    - ``peak_in_flight`` records the highest concurrency actually observed.
    """

    def __init__(self, max_workers: int, cancel_event: Optional[threading.Event] = None) -> None:
        self._max_workers = max(1, max_workers)
        self._executor = ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="solat-batch"
        )
        self._slots = threading.BoundedSemaphore(self._max_workers)
        self._cancel_event = cancel_event
        self._lock = Lock()
        self._in_flight: int = 0
        self._peak_in_flight: int = 0

    @property
    def max_workers(self) -> int:
        return self._max_workers

    def _cancelled(self) -> bool:
        return self._cancel_event is not None and self._cancel_event.is_set()

    def map(self, items: Iterable[T], fn: Callable[[T], R]) -> tuple[list[R], list[T]]:
        """Run ``fn`` over ``items`` and return ``(results, undispatched_items)``.

        Results follow submission order.
        """

        pending = list(items)
        futures: list[Future[R]] = []
        undispatched: list[T] = []

        for index, item in enumerate(pending):
            self._slots.acquire()
            if self._cancelled():
                self._slots.release()
                undispatched = pending[index:]
                _scraper_event(
                    "state",
                    phase="batch_executor",
                    kind="cancelled",
                    undispatched=len(undispatched),
                )
                break
            with self._lock:
                self._in_flight += 1
                self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
            futures.append(self._executor.submit(self._wrapped, fn, item))

        return [future.result() for future in futures], undispatched

    def _wrapped(self, fn: Callable[[T], R], item: T) -> R:
        try:
            return fn(item)
        finally:
            with self._lock:
                self._in_flight -= 1
            self._slots.release()

    @property
    def peak_in_flight(self) -> int:
        with self._lock:
            return self._peak_in_flight

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)


__all__ = ["BatchExecutor"]
