"""Library settings: YAML loading with env substitution, cached."""

from hotini.config.loader import get_settings, reset_settings_cache
from hotini.config.schemas import HotIniSettings

__all__ = ["HotIniSettings", "get_settings", "reset_settings_cache"]
