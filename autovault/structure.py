"""
Structure Generator for AutoVault
Creates the customer/section folder tree and the hub file under the vault

STRUCTURE CREATED:
    <VaultRoot>/Run/
        CUST-002/
            CUST-002-Index.md
            CUST-002-FP/
                CUST-002-FP-Index.md
            CUST-002-RAISED/
                ...
    <VaultRoot>/Run-Hub.md

Usage:
    from autovault.structure import generate

    report = generate(config, dry_run=True)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .codes import hub_link
from .config import Config
from .errors import VaultRootError

logger = logging.getLogger(__name__)


@dataclass
class StructureReport:
    """What a structure pass created, found, or failed on."""

    dry_run: bool = False
    created_dirs: list[Path] = field(default_factory=list)
    created_files: list[Path] = field(default_factory=list)
    existing: list[Path] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    hub_written: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "dry_run": self.dry_run,
            "created_dirs": [str(p) for p in self.created_dirs],
            "created_files": [str(p) for p in self.created_files],
            "existing": len(self.existing),
            "hub_written": self.hub_written,
            "errors": self.errors,
            "ok": self.ok,
        }


def check_vault_root(config: Config) -> None:
    """Fail before touching anything when the vault root is unusable.

    Raises:
        VaultRootError: If the vault root is missing, not a directory or not writable
    """
    root = config.vault_root
    if not root.exists():
        raise VaultRootError(f"Vault root does not exist: {root}")
    if not root.is_dir():
        raise VaultRootError(f"Vault root is not a directory: {root}")
    if not os.access(root, os.W_OK):
        raise VaultRootError(f"Vault root is not writable: {root}")


def ensure_directory(path: Path, report: StructureReport) -> None:
    if path.is_dir():
        logger.debug("Directory already exists: %s", path)
        report.existing.append(path)
        return

    if report.dry_run:
        logger.info("[DRY-RUN] Would create directory: %s", path)
    else:
        logger.info("Creating directory: %s", path)
        path.mkdir(parents=True, exist_ok=True)
    report.created_dirs.append(path)


def ensure_file(path: Path, report: StructureReport) -> None:
    """Create an empty file if missing; existing content is never touched."""
    if path.is_file():
        logger.debug("File already exists: %s", path)
        report.existing.append(path)
        return

    if report.dry_run:
        logger.info("[DRY-RUN] Would create file: %s", path)
    else:
        logger.info("Creating file: %s", path)
        path.touch()
    report.created_files.append(path)


def ensure_customer(config: Config, customer_id: int, report: StructureReport) -> str:
    """Ensure one customer's folder, root index, section folders and section indexes.

    Args:
        config: Vault configuration
        customer_id: Valid customer ID
        report: Report to record actions in (its dry_run flag is honoured)

    Returns:
        The customer code
    """
    code = config.code(customer_id)
    logger.info("Processing %s", code)

    ensure_directory(config.customer_dir(customer_id), report)
    ensure_file(config.root_index_path(customer_id), report)

    for section in config.sections:
        ensure_directory(config.section_dir(customer_id, section), report)
        ensure_file(config.section_index_path(customer_id, section), report)

    return code


def render_hub(codes: list[str]) -> str:
    """Render the hub file linking every customer's root index."""
    lines = ["# Run Hub", "", "## Customers", ""]
    lines.extend(f"- [[{hub_link(code)}]]" for code in codes)
    return "\n".join(lines) + "\n"


def write_hub(config: Config, codes: list[str], report: StructureReport) -> None:
    hub_path = config.hub_path
    if hub_path.exists():
        logger.info("Hub file already exists; preserving current content: %s", hub_path)
        return

    if report.dry_run:
        logger.info("[DRY-RUN] Would create hub file: %s", hub_path)
    else:
        hub_path.write_text(render_hub(codes), encoding="utf-8")
        logger.info("Hub file written: %s", hub_path)
    report.hub_written = True


def generate(config: Config, dry_run: bool = False) -> StructureReport:
    """
    Create the Run structure for every configured customer.

    Invalid customer entries are logged and skipped; the pass continues for
    the remaining customers and the report is marked as failed.

    Args:
        config: Vault configuration
        dry_run: Report planned actions without changing the filesystem

    Returns:
        StructureReport

    Raises:
        VaultRootError: If the vault root is unusable (nothing is processed)
    """
    check_vault_root(config)
    report = StructureReport(dry_run=dry_run)

    logger.info("Starting CUST Run structure creation")
    logger.info("Vault root: %s", config.vault_root)

    if not config.customer_ids and not config.invalid_customer_ids:
        logger.warning("No CUST ids defined in CustomerIds. Nothing to create.")

    ensure_directory(config.run_path, report)

    for entry in config.invalid_customer_ids:
        message = f"Invalid CUST id (not an integer): {entry!r}"
        logger.error(message)
        report.errors.append(message)

    codes = [ensure_customer(config, customer_id, report) for customer_id in config.customer_ids]

    write_hub(config, codes, report)

    logger.info("CUST Run structure creation completed.")
    return report
