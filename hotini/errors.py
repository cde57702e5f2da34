"""Exceptions raised by INI handles, the registry and the file watcher."""

from __future__ import annotations

from typing import Any


class IniFileError(Exception):
    """Base error for everything raised by hotini; carries the file path."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class IniLoadError(IniFileError):
    """File missing or unreadable. Raised before any snapshot is touched."""


class IniParseError(IniFileError):
    """INI syntax error. The previous snapshot (if any) stays in effect."""


class IniDecodeError(IniFileError):
    """File contents do not fit the target record.

    ``errors`` is pydantic's error list, unmodified.
    """

    def __init__(self, message: str, path: str | None = None, errors: list[dict[str, Any]] | None = None):
        super().__init__(message, path)
        self.errors = errors or []


class WatchError(IniFileError):
    """Observer could not be started or the path could not be scheduled."""
