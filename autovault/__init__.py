"""AutoVault - organize an Obsidian vault into a customer/section Run structure."""

from __future__ import annotations

__version__ = "2.9.0"

from .codes import format_code
from .config import Config, load_config, validate_config
from .errors import (
    AutoVaultError,
    BackupError,
    ConfigError,
    ConfigFieldError,
    ConfigNotFoundError,
    ConfigParseError,
    TemplateMissingError,
    VaultRootError,
)
from .structure import generate
from .templates import apply, apply_templates, load_templates
from .verify import verify

__all__ = [
    "AutoVaultError",
    "BackupError",
    "Config",
    "ConfigError",
    "ConfigFieldError",
    "ConfigNotFoundError",
    "ConfigParseError",
    "TemplateMissingError",
    "VaultRootError",
    "__version__",
    "apply",
    "apply_templates",
    "format_code",
    "generate",
    "load_config",
    "load_templates",
    "validate_config",
    "verify",
]
