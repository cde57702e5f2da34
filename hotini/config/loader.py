"""
Settings loader: YAML file, env variable injection, Pydantic validation.

- Settings file from HOTINI_SETTINGS env, else hotini.yaml in the working directory.
- Missing file -> defaults.
- ${ENV_VAR} and ${ENV_VAR:-fallback} replacement in YAML values.
- HOTINI_DISPATCH_MODE env overrides dispatch_mode.
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml

from hotini.config.schemas import HotIniSettings

_settings: HotIniSettings | None = None

# ${NAME} or ${NAME:-fallback}
_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")


def reset_settings_cache() -> None:
    """Clear cached settings (for tests). Next get_settings() reloads from file and env."""
    global _settings
    _settings = None


def _expand_env(value: str) -> str:
    """Expand ${NAME} / ${NAME:-fallback}; an unset NAME without fallback is left as written."""

    def repl(m: re.Match[str]) -> str:
        name, fallback = m.group(1), m.group(2)
        if name in os.environ:
            return os.environ[name]
        return m.group(0) if fallback is None else fallback

    return _ENV_PATTERN.sub(repl, value)


def _substitute_env(value: Any) -> Any:
    """Apply _expand_env to every string in a YAML document."""
    if isinstance(value, str):
        return _expand_env(value)
    if isinstance(value, dict):
        return {k: _substitute_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_substitute_env(v) for v in value]
    return value


def _load_yaml(path: Path) -> dict[str, Any]:
    """
    Settings mapping from path, env-expanded; {} when the file does not exist.

    Raises:
        ValueError: Document is not a mapping.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    data = yaml.safe_load(text)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"settings file {path} must hold a mapping, got {type(data).__name__}")
    return _substitute_env(data)


def _settings_path() -> Path:
    """Path to the settings file; HOTINI_SETTINGS env or default 'hotini.yaml'."""
    return Path(os.environ.get("HOTINI_SETTINGS", "hotini.yaml")).resolve()


def load_settings(path: Path | None = None) -> HotIniSettings:
    """
    Load and validate settings without touching the cache.

    Raises:
        ValidationError: If the file holds invalid values.
        ValueError: If the file is not a YAML mapping.
    """
    data = _load_yaml(path or _settings_path())
    if os.environ.get("HOTINI_DISPATCH_MODE"):
        data["dispatch_mode"] = os.environ["HOTINI_DISPATCH_MODE"]
    return HotIniSettings.model_validate(data)


def get_settings() -> HotIniSettings:
    """Return settings (load once, then cached)."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
