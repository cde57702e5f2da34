"""
IniFile: one file's snapshot, its reload logic and its watch lifecycle.

- load(): parse under the write lock, swap the snapshot; a failed parse keeps the old one.
- read_key(): shared lock, returns value or caller default (empty counts as missing).
- decode_into(): reparse + swap, then decode onto a pydantic model / dataclass.
- keep_watch(): start the FileWatcher once; write events that change the file
  contents -> load() + update(). Metadata-only changes (chmod, touch) are dropped.
"""

from __future__ import annotations

import hashlib
import threading
from typing import Any, Callable, Mapping

import structlog

from hotini.config.schemas import HotIniSettings
from hotini.decode import decode_sections
from hotini.errors import IniFileError, WatchError
from hotini.locks import ReadWriteLock
from hotini.parser import IniSnapshot, parse_ini_bytes, read_ini_bytes
from hotini.subscribers import Callback, SubscriberTable
from hotini.watcher import FileWatcher

logger = structlog.get_logger(__name__)

WatcherFactory = Callable[..., FileWatcher]


class IniFile:
    """Cached, hot-reloadable view of one INI file."""

    def __init__(
        self,
        path: str,
        subscribers: SubscriberTable,
        settings: HotIniSettings | None = None,
        watcher_factory: WatcherFactory = FileWatcher,
    ):
        self.path = path
        self.settings = settings or HotIniSettings()
        self._subscribers = subscribers
        self._watcher_factory = watcher_factory
        self._snapshot: IniSnapshot | None = None
        # sha256 of the bytes last read, parsed or not
        self._content_digest: str | None = None
        self._lock = ReadWriteLock()
        self._watch_lock = threading.Lock()
        self._watcher: FileWatcher | None = None
        self._closed = False
        self.watching = False

    def __repr__(self) -> str:
        return f"IniFile(path={self.path!r}, watching={self.watching})"

    @property
    def snapshot(self) -> IniSnapshot | None:
        with self._lock.read():
            return self._snapshot

    @property
    def watcher(self) -> FileWatcher | None:
        return self._watcher

    def _reparse(self) -> IniSnapshot:
        """Parse the file and swap the snapshot; caller holds the write lock."""
        try:
            data = read_ini_bytes(self.path)
            self._content_digest = hashlib.sha256(data).hexdigest()
            snapshot = parse_ini_bytes(data, path=self.path, encoding=self.settings.encoding)
        except IniFileError as e:
            logger.error("ini_load_failed", path=self.path, error=str(e))
            raise
        self._snapshot = snapshot
        return snapshot

    def load(self) -> None:
        """
        Re-read and re-parse the file, replacing the snapshot.

        After the first successful load, starts watching (settings.auto_watch).

        Raises:
            IniLoadError: File missing or unreadable (previous snapshot kept).
            IniParseError: Syntax error (previous snapshot kept).
        """
        with self._lock.write():
            self._reparse()
        logger.info("ini_loaded", path=self.path)
        if self.settings.auto_watch and not self.watching and not self._closed:
            try:
                self.keep_watch()
            except WatchError as e:
                logger.warning("watch_start_failed", path=self.path, error=str(e))

    def read_key(self, section: str, key: str, default: str = "") -> str:
        """Value of key in section, or default when absent or empty. Never raises."""
        with self._lock.read():
            snapshot = self._snapshot
            value = snapshot.get(section, key) if snapshot is not None else None
        if value:
            return value
        return default

    def sections(self) -> list[str]:
        snapshot = self.snapshot
        return snapshot.sections() if snapshot is not None else []

    def as_dict(self) -> dict[str, dict[str, str]]:
        snapshot = self.snapshot
        return snapshot.as_dict() if snapshot is not None else {}

    def section(self, name: str) -> Mapping[str, str]:
        snapshot = self.snapshot
        return snapshot.section(name) if snapshot is not None else {}

    def decode_into(self, record: Any) -> Any:
        """
        Re-read the file and decode it into record; the new snapshot replaces the old one.

        Args:
            record: Model / dataclass type (new instance returned) or instance (filled in place).

        Raises:
            IniLoadError, IniParseError: Reading failed (previous snapshot kept).
            IniDecodeError: Structural mismatch, pydantic errors attached verbatim.
        """
        with self._lock.write():
            snapshot = self._reparse()
        return decode_sections(snapshot, record)

    map_into = decode_into

    def register(self, callback: Callback) -> None:
        """Call callback after every change to this file. Cannot be undone."""
        self._subscribers.register(self.path, callback)

    def update(self) -> int:
        """Dispatch all callbacks registered for this file."""
        return self._subscribers.dispatch(self.path)

    def keep_watch(self) -> None:
        """
        Start the background watch on this file; no-op if already watching.

        Raises:
            WatchError: Observer unavailable, path cannot be watched, or handle closed.
        """
        with self._watch_lock:
            if self._closed:
                raise WatchError(f"config file handle {self.path} is closed", self.path)
            if self._watcher is not None:
                return
            watcher = self._watcher_factory(
                self.path,
                self._on_file_modified,
                join_timeout=self.settings.watch_join_timeout,
            )
            watcher.start()
            self._watcher = watcher
            self.watching = True

    def _contents_unchanged(self) -> bool:
        """True when the bytes on disk match the last read (chmod, touch)."""
        try:
            data = read_ini_bytes(self.path)
        except IniFileError:
            return False
        with self._lock.read():
            return self._content_digest == hashlib.sha256(data).hexdigest()

    def _on_file_modified(self) -> None:
        """Watch-loop hook: reload, then notify subscribers. Unchanged contents are skipped."""
        if self._contents_unchanged():
            logger.debug("watch_event_unchanged", path=self.path)
            return
        try:
            self.load()
        except IniFileError as e:
            logger.warning("reload_failed", path=self.path, error=str(e))
            if not self.settings.notify_on_failed_reload:
                return
        self.update()

    def close(self) -> None:
        """Stop watching. The last snapshot stays readable. Idempotent."""
        with self._watch_lock:
            self._closed = True
            watcher, self._watcher = self._watcher, None
        if watcher is not None:
            watcher.stop()
