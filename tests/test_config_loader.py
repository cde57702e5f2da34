"""Tests for settings loader: env injection, validation, caching."""

import pytest
from pydantic import ValidationError

from hotini.config.loader import (
    _settings_path,
    _substitute_env,
    get_settings,
    load_settings,
    reset_settings_cache,
)
from hotini.config.schemas import HotIniSettings


def test_substitute_env_string(monkeypatch):
    monkeypatch.setenv("FOO", "bar")
    monkeypatch.delenv("HOTINI_SURELY_UNSET", raising=False)
    assert _substitute_env("hello ${FOO}") == "hello bar"
    assert _substitute_env("${HOTINI_SURELY_UNSET}") == "${HOTINI_SURELY_UNSET}"
    # bare $NAME is not expanded
    assert _substitute_env("$FOO") == "$FOO"


def test_substitute_env_fallback(monkeypatch):
    monkeypatch.setenv("FOO", "bar")
    monkeypatch.delenv("HOTINI_SURELY_UNSET", raising=False)
    assert _substitute_env("${HOTINI_SURELY_UNSET:-utf-8}") == "utf-8"
    assert _substitute_env("${HOTINI_SURELY_UNSET:-}") == ""
    assert _substitute_env("${FOO:-other}") == "bar"


def test_substitute_env_nested(monkeypatch):
    monkeypatch.setenv("KEY", "secret")
    data = {"a": "${KEY}", "b": [{"c": "x-${KEY}"}], "n": 3}
    out = _substitute_env(data)
    assert out["a"] == "secret"
    assert out["b"][0]["c"] == "x-secret"
    assert out["n"] == 3


def test_settings_path_from_env(tmp_path, monkeypatch):
    monkeypatch.setenv("HOTINI_SETTINGS", str(tmp_path / "custom.yaml"))
    assert _settings_path() == (tmp_path / "custom.yaml").resolve()


def test_settings_path_default(monkeypatch):
    monkeypatch.delenv("HOTINI_SETTINGS", raising=False)
    assert _settings_path().name == "hotini.yaml"


def test_missing_file_gives_defaults(tmp_path):
    settings = load_settings(tmp_path / "nope.yaml")
    assert settings == HotIniSettings()
    assert settings.dispatch_mode == "concurrent"
    assert settings.notify_on_failed_reload is True
    assert settings.auto_watch is True


def test_load_settings_with_env_substitution(tmp_path, monkeypatch):
    monkeypatch.setenv("INI_WORKERS", "3")
    path = tmp_path / "hotini.yaml"
    path.write_text("""
dispatch_mode: sequential
dispatch_workers: ${INI_WORKERS}
notify_on_failed_reload: false
encoding: latin-1
unknown_key: ignored
""")
    settings = load_settings(path)
    assert settings.dispatch_mode == "sequential"
    assert settings.dispatch_workers == 3
    assert settings.notify_on_failed_reload is False
    assert settings.encoding == "latin-1"


def test_dispatch_mode_env_override(tmp_path, monkeypatch):
    path = tmp_path / "hotini.yaml"
    path.write_text("dispatch_mode: concurrent\n")
    monkeypatch.setenv("HOTINI_DISPATCH_MODE", "sequential")
    assert load_settings(path).dispatch_mode == "sequential"


def test_invalid_settings_raise(tmp_path):
    path = tmp_path / "hotini.yaml"
    path.write_text("dispatch_mode: parallel\n")
    with pytest.raises(ValidationError):
        load_settings(path)
    path.write_text("watch_join_timeout: 0\n")
    with pytest.raises(ValidationError):
        load_settings(path)


def test_invalid_yaml_raises(tmp_path):
    path = tmp_path / "hotini.yaml"
    path.write_text("dispatch_mode: [sequential")
    with pytest.raises(Exception):
        load_settings(path)


def test_get_settings_is_cached_until_reset(tmp_path):
    """conftest points HOTINI_SETTINGS at tmp_path/hotini.yaml."""
    first = get_settings()
    assert first.dispatch_mode == "concurrent"
    (tmp_path / "hotini.yaml").write_text("dispatch_mode: sequential\n")
    assert get_settings() is first
    reset_settings_cache()
    assert get_settings().dispatch_mode == "sequential"


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "hotini.yaml"
    path.write_text("# nothing set\n")
    assert load_settings(path) == HotIniSettings()


def test_non_mapping_settings_raise(tmp_path):
    path = tmp_path / "hotini.yaml"
    path.write_text("- sequential\n- concurrent\n")
    with pytest.raises(ValueError, match="mapping"):
        load_settings(path)
