"""
Settings Loader for AutoVault

Loads the toolkit's own settings (where the vault configuration, the
template store and the backups live, log verbosity) from a YAML file.
The vault configuration itself is the JSON file named by `config_file`.

Lookup order:
1. Explicit path (--settings)
2. $AUTOVAULT_SETTINGS
3. ./config/settings.yaml
4. Built-in defaults

Environment overrides applied last: CONFIG_JSON, TEMPLATES_JSON, BACKUP_DIR,
LOG_LEVEL, NO_COLOR.

Usage:
    from autovault.settings import load_settings

    settings = load_settings()
    print(settings.config_file)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

SETTINGS_ENV = "AUTOVAULT_SETTINGS"
DEFAULT_SETTINGS_FILE = Path("config") / "settings.yaml"
PATH_KEYS = ("config_file", "templates_file", "backup_dir")


@dataclass
class Settings:
    """Toolkit settings loaded from settings.yaml."""

    config_file: Path
    templates_file: Path
    backup_dir: Path
    log_level: str = "info"
    color: bool = True
    backup_keep: int = 10
    backup_list_limit: int = 10
    source: Path | None = None  # settings file the values came from


def get_default_settings_dict() -> dict[str, Any]:
    """Get default settings as a dictionary."""
    return {
        "config_file": "config/cust-run-config.json",
        "templates_file": "config/templates.json",
        "backup_dir": "backups",
        "log_level": "info",
        "color": True,
        "backups": {"keep": 10, "list_limit": 10},
    }


def find_settings_file(explicit: Path | None = None) -> Path | None:
    """Locate the settings file, or None when defaults should be used.

    Raises:
        FileNotFoundError: If an explicitly requested file does not exist
    """
    if explicit is not None:
        if not explicit.exists():
            raise FileNotFoundError(f"Settings file not found: {explicit}")
        return explicit

    env_path = os.environ.get(SETTINGS_ENV)
    if env_path:
        path = Path(env_path).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"Settings file not found: {path} (from ${SETTINGS_ENV})")
        return path

    candidate = Path.cwd() / DEFAULT_SETTINGS_FILE
    if candidate.exists():
        return candidate

    return None


def load_settings(path: Path | None = None, apply_env: bool = True) -> Settings:
    """
    Load toolkit settings.

    Args:
        path: Explicit settings file (optional)
        apply_env: Apply environment variable overrides

    Returns:
        Settings object with absolute paths

    Raises:
        FileNotFoundError: If an explicit settings file doesn't exist
        ValueError: If the settings file is not valid YAML or has bad values
    """
    settings_path = find_settings_file(path)
    raw = get_default_settings_dict()
    base_dir = Path.cwd()

    if settings_path is not None:
        try:
            with settings_path.open("r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in settings file: {e}") from e

        if loaded is not None and not isinstance(loaded, dict):
            raise ValueError(f"Settings file must contain a mapping: {settings_path}")
        loaded = loaded or {}

        # Paths given in the file are relative to the file's own directory
        file_dir = settings_path.resolve().parent
        for key in PATH_KEYS:
            if key in loaded:
                loaded[key] = str(_resolve(file_dir, loaded[key], key))
        raw = merge_settings(raw, loaded)

    settings = _parse_settings(raw, base_dir, settings_path)

    if apply_env:
        settings = apply_env_overrides(settings)

    return settings


def merge_settings(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge two settings dicts; nested dicts are merged recursively."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_settings(result[key], value)
        else:
            result[key] = value
    return result


def _resolve(base_dir: Path, value: Any, key: str) -> Path:
    if not isinstance(value, str) or not value:
        raise ValueError(f"Setting '{key}' must be a non-empty string")
    path = Path(value).expanduser()
    return path if path.is_absolute() else base_dir / path


def _positive_int(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"Setting '{key}' must be a positive integer (got: {value!r})")
    return value


def _parse_settings(raw: dict[str, Any], base_dir: Path, source: Path | None) -> Settings:
    """Parse raw YAML dict into Settings object."""
    backups = raw.get("backups") or {}
    if not isinstance(backups, dict):
        raise ValueError("Setting 'backups' must be a mapping")

    color = raw.get("color", True)
    if not isinstance(color, bool):
        raise ValueError(f"Setting 'color' must be true or false (got: {color!r})")

    return Settings(
        config_file=_resolve(base_dir, raw.get("config_file"), "config_file"),
        templates_file=_resolve(base_dir, raw.get("templates_file"), "templates_file"),
        backup_dir=_resolve(base_dir, raw.get("backup_dir"), "backup_dir"),
        log_level=str(raw.get("log_level", "info")),
        color=color,
        backup_keep=_positive_int(backups.get("keep", 10), "backups.keep"),
        backup_list_limit=_positive_int(backups.get("list_limit", 10), "backups.list_limit"),
        source=source,
    )


def apply_env_overrides(settings: Settings) -> Settings:
    """Apply the environment variables the shell toolkit honoured.

    Relative paths are taken from the current directory.
    """
    cwd = Path.cwd()
    if os.environ.get("CONFIG_JSON"):
        settings.config_file = _resolve(cwd, os.environ["CONFIG_JSON"], "CONFIG_JSON")
    if os.environ.get("TEMPLATES_JSON"):
        settings.templates_file = _resolve(cwd, os.environ["TEMPLATES_JSON"], "TEMPLATES_JSON")
    if os.environ.get("BACKUP_DIR"):
        settings.backup_dir = _resolve(cwd, os.environ["BACKUP_DIR"], "BACKUP_DIR")
    if os.environ.get("LOG_LEVEL"):
        settings.log_level = os.environ["LOG_LEVEL"]
    if os.environ.get("NO_COLOR"):
        settings.color = False
    return settings
