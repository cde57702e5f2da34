"""
File watcher: watchdog observer + one consumer thread per watched file.

The observer watches the file's directory (non-recursive) and queues events
for the exact file path. The consumer thread calls on_change() for
``modified`` events only; created/deleted/moved/closed events are dropped.
stop() shuts the observer down and ends the thread with a sentinel.
"""

from __future__ import annotations

import os
import queue
import threading
from typing import Any, Callable

import structlog
from watchdog.events import EVENT_TYPE_MODIFIED, FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from hotini.errors import WatchError

logger = structlog.get_logger(__name__)


class _PathEventHandler(FileSystemEventHandler):
    """Forwards events touching one file into a queue."""

    def __init__(self, path: str, events: queue.Queue[FileSystemEvent | None]):
        super().__init__()
        self.path = path
        self._events = events

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        paths = {os.fsdecode(event.src_path), os.fsdecode(getattr(event, "dest_path", "") or "")}
        if self.path in {os.path.realpath(p) for p in paths if p}:
            self._events.put(event)


class FileWatcher:
    """Watch one file and call on_change() for every write to it."""

    def __init__(
        self,
        path: str,
        on_change: Callable[[], None],
        observer_factory: Callable[[], Any] = Observer,
        join_timeout: float = 2.0,
    ):
        self.path = os.path.realpath(path)
        self.on_change = on_change
        self.join_timeout = join_timeout
        self._events: queue.Queue[FileSystemEvent | None] = queue.Queue()
        self.handler = _PathEventHandler(self.path, self._events)
        self._observer_factory = observer_factory
        self._observer: Any = None
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """
        Schedule the observer and start the consumer thread. No-op if already running.

        Raises:
            WatchError: Observer could not be created, scheduled or started.
        """
        if self._thread is not None:
            return
        try:
            observer = self._observer_factory()
            observer.schedule(self.handler, os.path.dirname(self.path), recursive=False)
            observer.start()
        except OSError as e:
            raise WatchError(f"failed to watch config file {self.path}: {e}", self.path) from e
        self._observer = observer
        self._thread = threading.Thread(
            target=self._run,
            name=f"hotini-watch-{os.path.basename(self.path)}",
            daemon=True,
        )
        self._thread.start()
        logger.info("watch_started", path=self.path)

    def _run(self) -> None:
        while True:
            event = self._events.get()
            try:
                if event is None:
                    return
                self._handle(event)
            finally:
                self._events.task_done()

    def _handle(self, event: FileSystemEvent) -> None:
        if event.event_type != EVENT_TYPE_MODIFIED:
            logger.debug("watch_event_ignored", path=self.path, event_type=event.event_type)
            return
        logger.debug("watch_event_modified", path=self.path)
        try:
            self.on_change()
        except Exception:
            # The loop outlives any single reload
            logger.exception("watch_handler_failed", path=self.path)

    def wait_idle(self) -> None:
        """Block until every queued event has been handled."""
        self._events.join()

    def stop(self) -> None:
        """Stop the observer and the consumer thread. Idempotent."""
        observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            observer.join(self.join_timeout)
        thread, self._thread = self._thread, None
        if thread is not None:
            self._events.put(None)
            if thread is not threading.current_thread():
                thread.join(self.join_timeout)
            logger.info("watch_stopped", path=self.path)
