"""Cached, hot-reloadable access to INI configuration files."""

from hotini.decode import CommaList
from hotini.errors import IniDecodeError, IniFileError, IniLoadError, IniParseError, WatchError
from hotini.handle import IniFile
from hotini.parser import IniSnapshot
from hotini.registry import Registry, get_registry, load_and_decode, open_ini, reset_registry

__version__ = "0.1.0"

__all__ = [
    "CommaList",
    "IniDecodeError",
    "IniFile",
    "IniFileError",
    "IniLoadError",
    "IniParseError",
    "IniSnapshot",
    "Registry",
    "WatchError",
    "__version__",
    "get_registry",
    "load_and_decode",
    "open_ini",
    "reset_registry",
]
