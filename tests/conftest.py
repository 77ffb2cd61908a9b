"""
Pytest configuration and shared fixtures
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

import pytest

from autovault.config import Config, load_config
from autovault.structure import generate

ENV_VARS = (
    "AUTOVAULT_SETTINGS",
    "CONFIG_JSON",
    "TEMPLATES_JSON",
    "BACKUP_DIR",
    "LOG_LEVEL",
    "NO_COLOR",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep the caller's environment from leaking into settings and logging"""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def reset_autovault_logger():
    """Drop handlers installed by setup_logging so they don't outlive capsys"""
    yield
    logger = logging.getLogger("autovault")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def vault_root(tmp_path: Path) -> Path:
    """Empty vault directory"""
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def config_data(vault_root: Path) -> dict[str, Any]:
    """Configuration document for one customer with two sections"""
    return {
        "VaultRoot": str(vault_root),
        "CustomerIdWidth": 3,
        "CustomerIds": [2],
        "Sections": ["FP", "RAISED"],
        "TemplateRelativeRoot": "_templates/Run",
    }


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[[dict[str, Any]], Path]:
    """Factory writing a configuration document to config/cust-run-config.json"""

    def _write(data: dict[str, Any]) -> Path:
        path = tmp_path / "config" / "cust-run-config.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def config_file(write_config, config_data) -> Path:
    return write_config(config_data)


@pytest.fixture
def config(config_file: Path) -> Config:
    return load_config(config_file)


@pytest.fixture
def generated_vault(config: Config) -> Config:
    """Configuration whose Run structure has already been generated"""
    generate(config)
    return config


@pytest.fixture
def template_data() -> dict[str, Any]:
    return {
        "version": "1.0",
        "description": "Test templates",
        "obsidian": {"templateFolder": "_templates/Run"},
        "templates": {
            "index": {
                "root": "# {{CUST_CODE}}\nSection: [{{SECTION}}]\nUTC: {{NOW_UTC}}\n",
                "sections": {
                    "FP": "# {{CUST_CODE}} - {{SECTION}}\nUTC: {{NOW_UTC}}\n",
                    "RAISED": "# {{CUST_CODE}} - {{SECTION}}\nUTC: {{NOW_UTC}}\n",
                },
            },
            "notes": {"FP": "FP note <% tp.file.title %>\n"},
        },
    }


@pytest.fixture
def template_store(tmp_path: Path, template_data: dict[str, Any]) -> Path:
    """templates.json written next to the configuration"""
    path = tmp_path / "config" / "templates.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(template_data, indent=2), encoding="utf-8")
    return path


@pytest.fixture
def ticking_clock() -> Callable[..., Callable[[], datetime]]:
    """Factory for clocks that advance by `step` seconds on every call"""

    def _make(start: datetime | None = None, step: int = 1) -> Callable[[], datetime]:
        current = [start or datetime(2025, 1, 15, 9, 30, 0, tzinfo=timezone.utc)]

        def _now() -> datetime:
            value = current[0]
            current[0] = value + timedelta(seconds=step)
            return value

        return _now

    return _make
