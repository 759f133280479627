"""
Fire-and-forget bookkeeping for replyguard.

Jobs that follow a reply (memory updates, trust updates, analytics) run on a
small thread pool after the reply has been returned. Each job is submitted on
its own; a failing job is logged and counted and never touches the reply or
the other jobs. Nothing is retried.
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Iterable, Optional

from replyguard.metrics import MetricsCollector, get_metrics

logger = logging.getLogger("replyguard.background")


class BackgroundQueue:
    """
    Bounded pool of best-effort workers.

    Example:
        ```python
        with BackgroundQueue(max_workers=2) as queue:
            queue.submit("update_trust", update_trust, event)
        ```
    """

    def __init__(self, max_workers: int = 4, metrics: Optional[MetricsCollector] = None):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.metrics = metrics or get_metrics()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="replyguard-bg",
        )
        self._pending: set[Future] = set()
        self._lock = threading.Lock()
        self._closed = False

    def _run(self, name: str, func: Callable[..., Any], args: tuple, kwargs: dict) -> bool:
        start = time.monotonic()
        try:
            func(*args, **kwargs)
        except Exception as e:
            duration_ms = int((time.monotonic() - start) * 1000)
            logger.warning("background job %s failed: %s", name, e, exc_info=True)
            self.metrics.record_background(name, False, duration_ms, str(e))
            return False
        duration_ms = int((time.monotonic() - start) * 1000)
        self.metrics.record_background(name, True, duration_ms)
        return True

    def submit(self, name: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Optional[Future]:
        """
        Schedule one job. Returns the future, or None if the queue is closed.

        The future resolves to True on success and False on failure; it
        never raises the job's exception.
        """
        with self._lock:
            if self._closed:
                logger.warning("background queue closed, dropping job %s", name)
                return None
            future = self._executor.submit(self._run, name, func, args, kwargs)
            self._pending.add(future)
        future.add_done_callback(self._discard)
        return future

    def submit_all(self, jobs: Iterable[tuple[str, Callable[..., Any]]], *args: Any) -> list[Future]:
        """Submit each (name, func) pair separately with the same arguments."""
        futures = []
        for name, func in jobs:
            future = self.submit(name, func, *args)
            if future is not None:
                futures.append(future)
        return futures

    def _discard(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def drain(self, timeout: Optional[float] = None) -> bool:
        """Wait for submitted jobs. Returns False if some are still running."""
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "BackgroundQueue":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.shutdown(wait=True)
