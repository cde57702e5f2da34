"""
INI parsing: file text -> immutable IniSnapshot.

- Grammar is configparser's: [section] headers, key = value / key: value lines,
  # and ; comments, indented continuation lines.
- Values are verbatim: no %-interpolation, keys keep their case.
- Keys before the first header land in the DEFAULT section; other sections do
  not inherit from it.
- A value opening with a quote runs to the matching quote (comment characters
  inside are kept); otherwise whitespace-prefixed # / ; start an inline
  comment. Duplicate sections and keys merge, last one wins.
"""

from __future__ import annotations

import configparser
import re
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from hotini.errors import IniLoadError, IniParseError

DEFAULT_SECTION = "DEFAULT"

# configparser always has an inherited section; give it a name no file uses so
# that [DEFAULT] behaves like any other section.
_INHERITED_SECTION = "\x00hotini-inherited"

_QUOTES = ('"', "'", "`")

# whitespace followed by # or ; starts an inline comment
_INLINE_COMMENT = re.compile(r"\s[#;]")

_EMPTY: Mapping[str, str] = MappingProxyType({})


class IniSnapshot:
    """Parsed contents of one INI file at a point in time. Never mutated."""

    __slots__ = ("path", "_sections")

    def __init__(self, sections: Mapping[str, Mapping[str, str]], path: str | None = None):
        self.path = path
        self._sections: Mapping[str, Mapping[str, str]] = MappingProxyType(
            {name: MappingProxyType(dict(keys)) for name, keys in sections.items()}
        )

    def get(self, section: str, key: str) -> str | None:
        """Raw value of key in section, or None when either is absent."""
        return self._sections.get(section, _EMPTY).get(key)

    def section(self, name: str) -> Mapping[str, str]:
        return self._sections.get(name, _EMPTY)

    def sections(self) -> list[str]:
        return list(self._sections)

    def as_dict(self) -> dict[str, dict[str, str]]:
        """Plain-dict copy: {section: {key: value}}."""
        return {name: dict(keys) for name, keys in self._sections.items()}

    def __contains__(self, section: object) -> bool:
        return section in self._sections

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IniSnapshot):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __repr__(self) -> str:
        return f"IniSnapshot(path={self.path!r}, sections={self.sections()!r})"


def _new_parser() -> configparser.ConfigParser:
    parser = configparser.ConfigParser(
        interpolation=None,
        strict=False,
        default_section=_INHERITED_SECTION,
    )
    parser.optionxform = str  # type: ignore[assignment,method-assign]
    return parser


def _clean_value(value: str) -> str:
    """Quoted value -> text between the quotes; otherwise drop any inline comment."""
    if value and value[0] in _QUOTES:
        end = value.find(value[0], 1)
        if end > 0:
            return value[1:end]
    m = _INLINE_COMMENT.search(value)
    if m:
        return value[: m.start()].rstrip()
    return value


def parse_ini_text(text: str, path: str | None = None) -> IniSnapshot:
    """
    Parse INI text into a snapshot.

    Raises:
        IniParseError: On any configparser syntax error.
    """
    source = path or "<string>"
    parser = _new_parser()
    try:
        try:
            parser.read_string(text, source=source)
        except configparser.MissingSectionHeaderError:
            # Leading keys without a header belong to DEFAULT
            parser = _new_parser()
            parser.read_string(f"[{DEFAULT_SECTION}]\n{text}", source=source)
    except configparser.Error as e:
        raise IniParseError(f"failed to parse config file {source}: {e}", path) from e

    sections: dict[str, dict[str, str]] = {}
    for name in parser.sections():
        sections[name] = {k: _clean_value(v or "") for k, v in parser.items(name, raw=True)}
    return IniSnapshot(sections, path=path)


def read_ini_bytes(path: str | Path) -> bytes:
    """
    Raw file contents.

    Raises:
        IniLoadError: File missing or unreadable.
    """
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise IniLoadError(f"failed to load config file {path}: {e}", str(path)) from e


def parse_ini_bytes(data: bytes, path: str | None = None, encoding: str = "utf-8") -> IniSnapshot:
    """
    Decode and parse raw file contents.

    Raises:
        IniLoadError: Not decodable with encoding.
        IniParseError: Syntax error.
    """
    try:
        text = data.decode(encoding).replace("\r\n", "\n")
    except UnicodeDecodeError as e:
        raise IniLoadError(f"failed to load config file {path}: {e}", path) from e
    return parse_ini_text(text, path=path)


def parse_ini_file(path: str | Path, encoding: str = "utf-8") -> IniSnapshot:
    """
    Read and parse an INI file.

    Raises:
        IniLoadError: File missing, unreadable or not decodable with encoding.
        IniParseError: Syntax error.
    """
    return parse_ini_bytes(read_ini_bytes(path), path=str(path), encoding=encoding)
