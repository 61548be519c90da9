"""
Settings loading.

Preferences live in `statuslog.toml` at the vault root:

    [preferences]
    enable_state_tracking = true
    log_path = "logs"

`STATUSLOG_LOG_PATH` in the environment overrides `log_path`.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore

from .models import Preferences, Settings

CONFIG_FILE_NAME = "statuslog.toml"
LOG_PATH_ENV = "STATUSLOG_LOG_PATH"


def _preferences_from_dict(data: dict[str, Any], source: Path) -> Preferences:
    prefs = Preferences()

    enabled = data.get("enable_state_tracking", prefs.enable_state_tracking)
    if not isinstance(enabled, bool):
        raise ValueError(f"{source}: preferences.enable_state_tracking must be a boolean")
    prefs.enable_state_tracking = enabled

    log_path = data.get("log_path", prefs.log_path)
    if not isinstance(log_path, str):
        raise ValueError(f"{source}: preferences.log_path must be a string")
    prefs.log_path = log_path

    return prefs


def load_settings(vault_path: Path, config_path: Path | None = None) -> Settings:
    """
    Load settings for a vault.

    Args:
        vault_path: Path to the vault root
        config_path: Explicit settings file (defaults to <vault>/statuslog.toml)

    Returns:
        Settings with defaults for anything not configured

    Raises:
        ValueError: If the file is malformed or has wrongly typed values
    """
    path = config_path or vault_path / CONFIG_FILE_NAME
    prefs = Preferences()

    if path.exists():
        try:
            with path.open("rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"{path}: invalid TOML: {e}") from e
        section = data.get("preferences", {})
        if not isinstance(section, dict):
            raise ValueError(f"{path}: [preferences] must be a table")
        prefs = _preferences_from_dict(section, path)

    env_log_path = os.environ.get(LOG_PATH_ENV)
    if env_log_path is not None:
        prefs.log_path = env_log_path

    return Settings(preferences=prefs)


class StaticSettings:
    """Settings provider returning a fixed snapshot."""

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or Settings()

    def snapshot(self) -> Settings:
        return self._settings


class FileSettings:
    """Settings provider that re-reads the settings file on every call."""

    def __init__(self, vault_path: Path, config_path: Path | None = None):
        self.vault_path = vault_path
        self.config_path = config_path

    def snapshot(self) -> Settings:
        return load_settings(self.vault_path, self.config_path)
