"""
Exception types raised by AutoVault.

Library code raises these; the CLI catches AutoVaultError (and OSError
from the filesystem), logs it and turns it into exit code 1.
"""

from __future__ import annotations


class AutoVaultError(Exception):
    """Base class for all AutoVault errors."""


class ConfigError(AutoVaultError, ValueError):
    """Configuration file cannot be used."""


class ConfigNotFoundError(ConfigError, FileNotFoundError):
    """Configuration file does not exist."""


class ConfigParseError(ConfigError):
    """Configuration file is not valid JSON."""


class ConfigFieldError(ConfigError):
    """A required field is missing or has the wrong type."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field


class VaultRootError(AutoVaultError, ValueError):
    """Vault root (or its Run folder) is missing or not writable."""


class TemplateMissingError(AutoVaultError, ValueError):
    """A template required for the run is not available."""


class BackupError(AutoVaultError, ValueError):
    """Backup cannot be created, found or restored."""
