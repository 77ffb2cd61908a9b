"""
Customer management for AutoVault
Add, remove and list the customer IDs of cust-run-config.json
"""

from __future__ import annotations

import dataclasses
import logging
import shutil
from pathlib import Path
from typing import Any

from .codes import is_valid_customer_id
from .config import Config, save_config
from .errors import ConfigError, ConfigFieldError
from .prompts import Confirm
from .structure import StructureReport, ensure_customer

logger = logging.getLogger(__name__)


def parse_customer_id(value: Any) -> int:
    """Accept an int or a digit string.

    Raises:
        ConfigFieldError: If the value is not a non-negative integer
    """
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not is_valid_customer_id(value):
        raise ConfigFieldError(
            "CustomerIds", f"customer ID must be a non-negative integer: {value!r}"
        )
    return value


def add_customer(
    config: Config, config_path: Path, customer_id: int | str, dry_run: bool = False
) -> Config:
    """
    Add a customer ID, save the configuration and create its structure.

    The structure is created only when the vault root already exists.

    Returns:
        The updated configuration (unchanged if the ID was already present)
    """
    customer_id = parse_customer_id(customer_id)

    if customer_id in config.customer_ids:
        logger.warning("Customer ID %d already exists", customer_id)
        return config

    updated = dataclasses.replace(
        config, customer_ids=tuple(sorted((*config.customer_ids, customer_id)))
    )
    if dry_run:
        logger.info("[DRY-RUN] Would add customer ID %d", customer_id)
    save_config(updated, config_path, dry_run=dry_run)
    if not dry_run:
        logger.info("Added customer ID %d", customer_id)

    if updated.vault_root.is_dir():
        report = StructureReport(dry_run=dry_run)
        code = ensure_customer(updated, customer_id, report)
        logger.info(
            "Structure for %s: %d folder(s), %d file(s) created",
            code,
            len(report.created_dirs),
            len(report.created_files),
        )
    else:
        logger.debug("Vault root not found, structure not created: %s", updated.vault_root)

    return updated


def remove_customer(
    config: Config,
    config_path: Path,
    customer_id: int | str,
    confirm: Confirm,
    delete_folders: bool = False,
    dry_run: bool = False,
) -> Config | None:
    """
    Remove a customer ID from the configuration.

    Vault folders are kept unless `delete_folders` is set, which also
    requires EnableCleanup in the configuration.

    Returns:
        The updated configuration, or None when cancelled

    Raises:
        ConfigFieldError: If the ID is invalid or not configured
        ConfigError: If folder deletion is requested without EnableCleanup
    """
    customer_id = parse_customer_id(customer_id)
    if customer_id not in config.customer_ids:
        raise ConfigFieldError("CustomerIds", f"customer ID {customer_id} not found")

    if delete_folders and not config.enable_cleanup:
        raise ConfigError("Deleting customer folders requires EnableCleanup: true in the config")

    code = config.code(customer_id)
    customer_dir = config.customer_dir(customer_id)
    updated = dataclasses.replace(
        config, customer_ids=tuple(i for i in config.customer_ids if i != customer_id)
    )

    if dry_run:
        logger.info("[DRY-RUN] Would remove customer ID %d (%s)", customer_id, code)
        save_config(updated, config_path, dry_run=True)
        if delete_folders and customer_dir.exists():
            logger.info("[DRY-RUN] Would delete folder: %s", customer_dir)
        return updated

    logger.warning("This will remove %s from the configuration.", code)
    if delete_folders:
        logger.warning("The folder %s and everything in it will be DELETED.", customer_dir)
    else:
        logger.warning("Note: Actual vault folders will NOT be deleted.")

    if not confirm(f"Remove {code}?"):
        logger.info("Cancelled")
        return None

    save_config(updated, config_path)
    logger.info("Removed customer ID %d (%s)", customer_id, code)

    if delete_folders and customer_dir.exists():
        shutil.rmtree(customer_dir)
        logger.info("Deleted folder: %s", customer_dir)

    return updated


def list_customers(config: Config) -> list[dict[str, Any]]:
    """Describe each configured customer and the state of its folders."""
    customers = []
    for customer_id in config.customer_ids:
        customer_dir = config.customer_dir(customer_id)
        sections = []
        for section in config.sections:
            section_dir = config.section_dir(customer_id, section)
            exists = section_dir.is_dir()
            files = sum(1 for p in section_dir.iterdir() if p.is_file()) if exists else 0
            sections.append({"name": section, "exists": exists, "files": files})

        customers.append(
            {
                "id": customer_id,
                "code": config.code(customer_id),
                "path": str(customer_dir),
                "exists": customer_dir.is_dir(),
                "sections": sections,
            }
        )
    return customers
