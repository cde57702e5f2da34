"""Pytest fixtures: INI files, registries with an inert observer, settings isolation."""

import functools
from pathlib import Path

import pytest

from hotini.config.loader import reset_settings_cache
from hotini.config.schemas import HotIniSettings
from hotini.registry import Registry, reset_registry
from hotini.watcher import FileWatcher

SERVER_INI = """[server]
port=8080
host = localhost
"""


class InertObserver:
    """Stands in for watchdog's Observer: records schedule() calls, never emits events."""

    def __init__(self):
        self.scheduled = []
        self.started = False
        self.stopped = False

    def schedule(self, handler, path, recursive=False):
        self.scheduled.append((path, recursive))

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def join(self, timeout=None):
        pass


class FailingObserver(InertObserver):
    def schedule(self, handler, path, recursive=False):
        raise OSError(28, "inotify watch limit reached")


inert_watcher = functools.partial(FileWatcher, observer_factory=InertObserver)
failing_watcher = functools.partial(FileWatcher, observer_factory=FailingObserver)


@pytest.fixture(autouse=True)
def _isolated_settings(tmp_path, monkeypatch):
    """Point HOTINI_SETTINGS at a (missing) file under tmp_path and drop cached state."""
    monkeypatch.setenv("HOTINI_SETTINGS", str(tmp_path / "hotini.yaml"))
    monkeypatch.delenv("HOTINI_DISPATCH_MODE", raising=False)
    reset_settings_cache()
    yield
    reset_registry()
    reset_settings_cache()


@pytest.fixture
def server_ini(tmp_path) -> Path:
    path = tmp_path / "server.ini"
    path.write_text(SERVER_INI, encoding="utf-8")
    return path


@pytest.fixture
def sequential_settings() -> HotIniSettings:
    return HotIniSettings(dispatch_mode="sequential")


@pytest.fixture
def registry(sequential_settings):
    """Registry with sequential dispatch and an observer that emits nothing."""
    reg = Registry(settings=sequential_settings, watcher_factory=inert_watcher)
    yield reg
    reg.close()


@pytest.fixture
def fire_event():
    """Feed a watchdog event to a handle's watcher and wait until the watch loop handled it."""

    def _fire(handle, event):
        handle.watcher.handler.dispatch(event)
        handle.watcher.wait_idle()

    return _fire


@pytest.fixture
def make_registry():
    """Build registries with custom settings (sequential dispatch unless overridden); closed after the test."""
    made = []

    def _make(watcher_factory=inert_watcher, **overrides):
        settings = HotIniSettings(**{"dispatch_mode": "sequential", **overrides})
        reg = Registry(settings=settings, watcher_factory=watcher_factory)
        made.append(reg)
        return reg

    yield _make
    for reg in made:
        reg.close()


@pytest.fixture
def failing_registry(make_registry):
    """Registry whose observer cannot schedule any path."""
    return make_registry(watcher_factory=failing_watcher)
