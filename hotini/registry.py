"""
Registry: file path -> IniFile, one handle per path.

Paths are normalised (user-expanded, resolved) before lookup. Construction
runs under the registry lock, so two threads opening the same new file get
the same handle. A default registry is created lazily for open_ini() and
load_and_decode().
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

import structlog

from hotini.config.loader import get_settings
from hotini.config.schemas import HotIniSettings
from hotini.handle import IniFile, WatcherFactory
from hotini.subscribers import SubscriberTable
from hotini.watcher import FileWatcher

logger = structlog.get_logger(__name__)


def _normalize(path: str | Path) -> str:
    return str(Path(path).expanduser().resolve())


class Registry:
    """Owns the handles and the subscriber table they share."""

    def __init__(
        self,
        settings: HotIniSettings | None = None,
        subscribers: SubscriberTable | None = None,
        watcher_factory: WatcherFactory = FileWatcher,
    ):
        self.settings = settings or get_settings()
        self.subscribers = subscribers or SubscriberTable(
            dispatch_mode=self.settings.dispatch_mode,
            max_workers=self.settings.dispatch_workers,
        )
        self._watcher_factory = watcher_factory
        self._lock = threading.Lock()
        self._handles: dict[str, IniFile] = {}

    def _new_handle(self, path: str) -> IniFile:
        return IniFile(path, self.subscribers, settings=self.settings, watcher_factory=self._watcher_factory)

    def get_or_create(self, path: str | Path) -> IniFile:
        """
        Return the handle for path, loading the file on first request.

        Raises:
            IniLoadError, IniParseError: First load failed; nothing is registered.
        """
        key = _normalize(path)
        with self._lock:
            handle = self._handles.get(key)
            if handle is not None:
                return handle
            handle = self._new_handle(key)
            handle.load()
            self._handles[key] = handle
            logger.info("ini_registered", path=key)
            return handle

    def get(self, path: str | Path) -> IniFile | None:
        with self._lock:
            return self._handles.get(_normalize(path))

    def load_and_decode(self, path: str | Path, record: Any) -> tuple[IniFile, Any]:
        """
        Load path and decode it into record with a standalone handle.

        The handle is not registered and does not watch; call keep_watch() on it to opt in.

        Returns:
            (handle, decoded record).
        """
        handle = self._new_handle(_normalize(path))
        decoded = handle.decode_into(record)
        return handle, decoded

    def close(self) -> None:
        """Stop all watchers and the dispatch pool, and forget every handle."""
        with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
        for handle in handles:
            handle.close()
        self.subscribers.shutdown(wait=True)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        return self.get(path) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles)


_registry: Registry | None = None
_registry_lock = threading.Lock()


def get_registry() -> Registry:
    """Process-wide registry built from get_settings() on first use."""
    global _registry
    with _registry_lock:
        if _registry is None:
            _registry = Registry()
        return _registry


def reset_registry() -> None:
    """Close and drop the default registry (for tests). Next get_registry() builds a new one."""
    global _registry
    with _registry_lock:
        registry, _registry = _registry, None
    if registry is not None:
        registry.close()


def open_ini(path: str | Path) -> IniFile:
    """Handle for path from the default registry; see Registry.get_or_create."""
    return get_registry().get_or_create(path)


def load_and_decode(path: str | Path, record: Any) -> tuple[IniFile, Any]:
    """Decode path into record without registering or watching; see Registry.load_and_decode."""
    return get_registry().load_and_decode(path, record)
