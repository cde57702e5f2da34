"""
Subscriber table: file path -> ordered list of change callbacks.

One ReadWriteLock guards every path. Callbacks are copied out under the lock
and invoked after it is released, so a callback may register more callbacks.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Callable

import structlog

from hotini.config.schemas import DispatchMode
from hotini.locks import ReadWriteLock

logger = structlog.get_logger(__name__)

Callback = Callable[[], None]


class SubscriberTable:
    """Append-only callback lists per path, with sequential or pooled dispatch."""

    def __init__(self, dispatch_mode: DispatchMode = "concurrent", max_workers: int | None = None):
        self.dispatch_mode = dispatch_mode
        self.max_workers = max_workers
        self._lock = ReadWriteLock()
        self._callbacks: dict[str, list[Callback]] = {}
        self._executor: ThreadPoolExecutor | None = None

    def register(self, path: str, callback: Callback) -> None:
        """Append callback for path. No deduplication, no removal."""
        with self._lock.write():
            self._callbacks.setdefault(path, []).append(callback)

    def callbacks(self, path: str) -> tuple[Callback, ...]:
        with self._lock.read():
            return tuple(self._callbacks.get(path, ()))

    def dispatch(self, path: str) -> int:
        """
        Invoke every callback registered for path.

        Returns:
            Number of callbacks dispatched (in concurrent mode they may still be running).
        """
        callbacks = self.callbacks(path)
        if not callbacks:
            logger.debug("no_subscribers", path=path)
            return 0
        if self.dispatch_mode == "sequential":
            for cb in callbacks:
                self._invoke(path, cb)
        else:
            executor = self._get_executor()
            for cb in callbacks:
                executor.submit(self._invoke, path, cb)
        return len(callbacks)

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock.write():
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers,
                    thread_name_prefix="hotini-callback",
                )
            return self._executor

    def _invoke(self, path: str, callback: Callback) -> None:
        try:
            callback()
        except Exception:
            # One bad subscriber must not stop the others or the watch loop
            logger.exception(
                "watch_callback_failed",
                path=path,
                callback=getattr(callback, "__qualname__", repr(callback)),
            )

    def shutdown(self, wait: bool = True) -> None:
        """Stop the dispatch pool; pending callbacks finish when wait is True."""
        with self._lock.write():
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)

    def __len__(self) -> int:
        with self._lock.read():
            return sum(len(cbs) for cbs in self._callbacks.values())
