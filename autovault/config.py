"""
Configuration Loader for AutoVault
Reads config/cust-run-config.json into an immutable Config value

Expected document:

    {
      "VaultRoot": "~/Obsidian/Work-Vault",
      "CustomerIdWidth": 3,
      "CustomerIds": [2, 4, 5],
      "Sections": ["FP", "RAISED", "INFORMATIONS", "DIVERS"],
      "TemplateRelativeRoot": "_templates/Run",
      "EnableCleanup": false
    }

Usage:
    from autovault.config import load_config, validate_config

    config = load_config(Path("config/cust-run-config.json"))
    errors, warnings = validate_config(config)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .codes import (
    HUB_FILE,
    RUN_FOLDER,
    format_code,
    index_file_name,
    is_valid_customer_id,
    section_folder_name,
)
from .errors import ConfigFieldError, ConfigNotFoundError, ConfigParseError

logger = logging.getLogger(__name__)

MIN_WIDTH = 1
MAX_WIDTH = 10

REQUIRED_FIELDS = (
    "VaultRoot",
    "CustomerIdWidth",
    "CustomerIds",
    "Sections",
    "TemplateRelativeRoot",
)


@dataclass(frozen=True)
class Config:
    """Vault configuration loaded from cust-run-config.json."""

    vault_root: Path
    customer_id_width: int
    customer_ids: tuple[int, ...]
    sections: tuple[str, ...]
    template_relative_root: str
    enable_cleanup: bool = False
    # CustomerIds entries that are not non-negative integers, kept so that
    # each one can be reported and skipped instead of failing the whole run
    invalid_customer_ids: tuple[Any, ...] = field(default_factory=tuple)

    @property
    def run_path(self) -> Path:
        return self.vault_root / RUN_FOLDER

    @property
    def hub_path(self) -> Path:
        return self.vault_root / HUB_FILE

    @property
    def template_root(self) -> Path:
        relative = normalize_separators(self.template_relative_root).lstrip("/")
        return self.vault_root / relative

    def code(self, customer_id: int) -> str:
        return format_code(customer_id, self.customer_id_width)

    def customer_dir(self, customer_id: int) -> Path:
        return self.run_path / self.code(customer_id)

    def root_index_path(self, customer_id: int) -> Path:
        code = self.code(customer_id)
        return self.customer_dir(customer_id) / index_file_name(code)

    def section_dir(self, customer_id: int, section: str) -> Path:
        return self.customer_dir(customer_id) / section_folder_name(self.code(customer_id), section)

    def section_index_path(self, customer_id: int, section: str) -> Path:
        folder = section_folder_name(self.code(customer_id), section)
        return self.section_dir(customer_id, section) / index_file_name(folder)


def normalize_separators(path: str) -> str:
    """Convert Windows-style separators written in the JSON file."""
    return path.replace("\\", "/")


def load_config(path: Path) -> Config:
    """
    Load and validate the vault configuration.

    Args:
        path: Path to cust-run-config.json

    Returns:
        Parsed Config

    Raises:
        ConfigNotFoundError: If the file does not exist
        ConfigParseError: If the file is not a JSON object
        ConfigFieldError: If a required field is missing or has the wrong type
    """
    if not path.exists():
        raise ConfigNotFoundError(f"Config file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigParseError(f"Invalid JSON in config file {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigParseError(f"Config file must contain a JSON object: {path}")

    config = parse_config(raw)
    logger.debug("Loaded configuration from %s", path)
    return config


def parse_config(raw: dict[str, Any]) -> Config:
    """Parse a decoded JSON object into a Config, failing closed on bad fields."""
    for name in REQUIRED_FIELDS:
        if name not in raw or raw[name] is None:
            raise ConfigFieldError(name, "missing required field")

    vault_root = raw["VaultRoot"]
    if not isinstance(vault_root, str) or not vault_root.strip():
        raise ConfigFieldError("VaultRoot", "must be a non-empty string")

    width = raw["CustomerIdWidth"]
    if isinstance(width, bool) or not isinstance(width, int):
        raise ConfigFieldError("CustomerIdWidth", f"must be a number (got: {width!r})")
    if not MIN_WIDTH <= width <= MAX_WIDTH:
        raise ConfigFieldError(
            "CustomerIdWidth", f"must be between {MIN_WIDTH} and {MAX_WIDTH} (got: {width})"
        )

    ids_raw = raw["CustomerIds"]
    if not isinstance(ids_raw, list):
        raise ConfigFieldError("CustomerIds", "must be an array")

    customer_ids: list[int] = []
    invalid_ids: list[Any] = []
    for entry in ids_raw:
        if not is_valid_customer_id(entry):
            invalid_ids.append(entry)
        elif entry in customer_ids:
            raise ConfigFieldError("CustomerIds", f"duplicate customer ID: {entry}")
        else:
            customer_ids.append(entry)

    sections_raw = raw["Sections"]
    if not isinstance(sections_raw, list):
        raise ConfigFieldError("Sections", "must be an array")
    sections: list[str] = []
    for entry in sections_raw:
        if not isinstance(entry, str) or not entry.strip():
            raise ConfigFieldError("Sections", f"must contain non-empty strings (got: {entry!r})")
        if entry in sections:
            raise ConfigFieldError("Sections", f"duplicate section: {entry}")
        sections.append(entry)

    template_root = raw["TemplateRelativeRoot"]
    if not isinstance(template_root, str):
        raise ConfigFieldError("TemplateRelativeRoot", "must be a string")

    enable_cleanup = raw.get("EnableCleanup", False)
    if enable_cleanup is None:
        enable_cleanup = False
    if not isinstance(enable_cleanup, bool):
        raise ConfigFieldError("EnableCleanup", f"must be true or false (got: {enable_cleanup!r})")

    return Config(
        vault_root=Path(normalize_separators(vault_root)).expanduser(),
        customer_id_width=width,
        customer_ids=tuple(customer_ids),
        sections=tuple(sections),
        template_relative_root=template_root,
        enable_cleanup=enable_cleanup,
        invalid_customer_ids=tuple(invalid_ids),
    )


def validate_config(config: Config) -> tuple[list[str], list[str]]:
    """
    Check a loaded configuration for per-item problems.

    Returns:
        (errors, warnings) - errors make the configuration unusable for the
        affected items, warnings are informational
    """
    errors: list[str] = []
    warnings: list[str] = []

    for entry in config.invalid_customer_ids:
        errors.append(f"Invalid CUST id (not a non-negative integer): {entry!r}")

    if not config.customer_ids and not config.invalid_customer_ids:
        warnings.append("CustomerIds array is empty")
    if not config.sections:
        warnings.append("Sections array is empty")

    for customer_id in config.customer_ids:
        if len(str(customer_id)) > config.customer_id_width:
            warnings.append(
                f"Customer ID {customer_id} has more digits than CustomerIdWidth "
                f"({config.customer_id_width}); code will be {config.code(customer_id)}"
            )

    if not config.vault_root.exists():
        warnings.append(f"Vault root does not exist: {config.vault_root}")
    elif not config.vault_root.is_dir():
        errors.append(f"Vault root is not a directory: {config.vault_root}")

    return errors, warnings


def config_to_dict(config: Config) -> dict[str, Any]:
    """Render a Config back into the JSON document layout."""
    return {
        "VaultRoot": str(config.vault_root),
        "CustomerIdWidth": config.customer_id_width,
        "CustomerIds": [*config.customer_ids, *config.invalid_customer_ids],
        "Sections": list(config.sections),
        "TemplateRelativeRoot": config.template_relative_root,
        "EnableCleanup": config.enable_cleanup,
    }


def save_config(config: Config, path: Path, dry_run: bool = False) -> bool:
    """
    Write the configuration file if its content changed.

    Args:
        config: Configuration to write
        path: Target JSON file
        dry_run: Only log what would be written

    Returns:
        True if the file was (or would be) written
    """
    content = json.dumps(config_to_dict(config), indent=2, ensure_ascii=False) + "\n"

    if path.exists() and path.read_text(encoding="utf-8") == content:
        logger.debug("Configuration unchanged: %s", path)
        return False

    if dry_run:
        logger.info("[DRY-RUN] Would update config file: %s", path)
        return True

    if not path.parent.exists():
        logger.info("Creating config directory: %s", path.parent)
        path.parent.mkdir(parents=True, exist_ok=True)

    logger.info("Writing configuration file: %s", path)
    path.write_text(content, encoding="utf-8")
    return True
