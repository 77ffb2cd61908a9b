"""
Section management for AutoVault
Add, remove and list the Sections of cust-run-config.json

Section names are stored upper-case. Removing a section only changes the
configuration; its folders stay in the vault.
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Any

from .config import Config, save_config
from .errors import ConfigFieldError
from .prompts import Confirm
from .structure import StructureReport, ensure_directory, ensure_file

logger = logging.getLogger(__name__)


def normalize_section(name: str) -> str:
    section = (name or "").strip().upper()
    if not section:
        raise ConfigFieldError("Sections", "section name cannot be empty")
    return section


def _find(config: Config, section: str) -> str | None:
    for existing in config.sections:
        if existing.upper() == section:
            return existing
    return None


def add_section(
    config: Config, config_path: Path, name: str, confirm: Confirm, dry_run: bool = False
) -> Config | None:
    """
    Add a section and create its folder and index for every customer.

    Returns:
        The updated configuration, the unchanged one if the section already
        exists, or None when cancelled
    """
    section = normalize_section(name)
    if _find(config, section) is not None:
        logger.warning("Section '%s' already exists", section)
        return config

    updated = dataclasses.replace(config, sections=(*config.sections, section))
    logger.info(
        "Adding section '%s' will create new folders for all %d customers.",
        section,
        len(config.customer_ids),
    )

    if not dry_run and not confirm(f"Add section '{section}'?"):
        logger.info("Cancelled")
        return None

    save_config(updated, config_path, dry_run=dry_run)
    if not dry_run:
        logger.info("Added section: %s", section)

    if updated.vault_root.is_dir():
        report = StructureReport(dry_run=dry_run)
        for customer_id in updated.customer_ids:
            ensure_directory(updated.section_dir(customer_id, section), report)
            ensure_file(updated.section_index_path(customer_id, section), report)
        logger.info("Created %d new section folders", len(report.created_dirs))

    return updated


def remove_section(
    config: Config, config_path: Path, name: str, confirm: Confirm, dry_run: bool = False
) -> Config | None:
    """
    Remove a section from the configuration (folders are not deleted).

    Returns:
        The updated configuration, or None when cancelled

    Raises:
        ConfigFieldError: If the section is not configured
    """
    existing = _find(config, normalize_section(name))
    if existing is None:
        raise ConfigFieldError("Sections", f"section '{name}' not found")

    remaining = tuple(s for s in config.sections if s != existing)
    updated = dataclasses.replace(config, sections=remaining)

    if dry_run:
        logger.info("[DRY-RUN] Would remove section: %s", existing)
        save_config(updated, config_path, dry_run=True)
        return updated

    logger.warning("This will remove '%s' from the configuration.", existing)
    logger.warning("Note: Actual vault folders will NOT be deleted.")
    if not confirm(f"Remove section '{existing}'?"):
        logger.info("Cancelled")
        return None

    save_config(updated, config_path)
    logger.info("Removed section: %s", existing)
    return updated


def list_sections(config: Config) -> list[dict[str, Any]]:
    """Per-section count of customers that have / lack the section folder."""
    sections = []
    for section in config.sections:
        existing = sum(
            1
            for customer_id in config.customer_ids
            if config.section_dir(customer_id, section).is_dir()
        )
        sections.append(
            {
                "name": section,
                "existing": existing,
                "missing": len(config.customer_ids) - existing,
                "total": len(config.customer_ids),
            }
        )
    return sections
