"""
Structure cleanup and customer archives for AutoVault
Deletes the configured customer folders (and optionally the hub file)

Cleanup is refused unless the configuration has "EnableCleanup": true, and
it asks for confirmation. Before deleting anything it writes a ZIP archive
of Run/ (plus the hub file when it is being removed) to the backup
directory; if that archive cannot be written nothing is deleted.

archive_customer() does the same for a single customer, writing
<vault>/_archive/CUST-NNN_<date>.zip and optionally removing the folder.
"""

from __future__ import annotations

import logging
import shutil
import zipfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from .config import Config
from .customers import parse_customer_id
from .errors import BackupError, ConfigError, VaultRootError
from .prompts import Confirm

logger = logging.getLogger(__name__)

ARCHIVE_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
CUSTOMER_ARCHIVE_DATE_FORMAT = "%Y%m%d"
ARCHIVE_FOLDER = "_archive"


@dataclass
class CleanupReport:
    dry_run: bool = False
    cancelled: bool = False
    archive: Path | None = None
    removed: list[Path] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "dry_run": self.dry_run,
            "cancelled": self.cancelled,
            "archive": str(self.archive) if self.archive else None,
            "removed": [str(p) for p in self.removed],
            "errors": self.errors,
            "ok": self.ok,
        }


def archive_structure(
    config: Config,
    backup_dir: Path,
    include_hub: bool = False,
    clock: Callable[[], datetime] = datetime.now,
) -> Path | None:
    """Write a ZIP of Run/ (and the hub file) with paths relative to the vault root.

    Returns:
        Path to the archive, or None when there is no Run folder to archive

    Raises:
        BackupError: If the archive cannot be written
    """
    run_path = config.run_path
    if not run_path.is_dir():
        logger.warning("Nothing to backup - Run folder does not exist: %s", run_path)
        return None

    timestamp = clock().strftime(ARCHIVE_TIMESTAMP_FORMAT)
    archive_path = backup_dir / f"autovault_backup_{timestamp}.zip"
    logger.info("Creating backup: %s", archive_path)

    extra = [config.hub_path] if include_hub and config.hub_path.is_file() else []
    write_archive(archive_path, run_path, config.vault_root, extra)

    logger.info("Backup created successfully: %s", archive_path)
    return archive_path


def write_archive(
    archive_path: Path, folder: Path, base: Path, extra: list[Path] | None = None
) -> int:
    """ZIP a folder tree (plus extra files) with names relative to `base`.

    A partially written archive is removed on failure.

    Returns:
        Number of files written

    Raises:
        BackupError: If the archive cannot be written
    """
    files = 0
    try:
        archive_path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(archive_path, "w", zipfile.ZIP_DEFLATED) as zipf:
            for item in [folder, *sorted(folder.rglob("*")), *(extra or [])]:
                arcname = item.relative_to(base)
                zipf.write(item, arcname)
                if item.is_file():
                    files += 1
                logger.debug("  + %s", arcname)
    except OSError as e:
        if archive_path.is_file():
            archive_path.unlink()
        raise BackupError(f"Failed to create backup archive {archive_path}: {e}") from e
    return files


@dataclass
class CustomerArchive:
    code: str
    source: Path
    archive: Path
    files: int = 0
    dry_run: bool = False
    cancelled: bool = False
    removed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "source": str(self.source),
            "archive": str(self.archive),
            "files": self.files,
            "dry_run": self.dry_run,
            "cancelled": self.cancelled,
            "removed": self.removed,
        }


def default_customer_archive(
    config: Config, customer_id: int, clock: Callable[[], datetime] = datetime.now
) -> Path:
    """<vault>/_archive/<CODE>_<YYYYmmdd>.zip"""
    stamp = clock().strftime(CUSTOMER_ARCHIVE_DATE_FORMAT)
    return config.vault_root / ARCHIVE_FOLDER / f"{config.code(customer_id)}_{stamp}.zip"


def archive_customer(
    config: Config,
    customer_id: int | str,
    confirm: Confirm,
    output: Path | None = None,
    remove: bool = False,
    force: bool = False,
    dry_run: bool = False,
    clock: Callable[[], datetime] = datetime.now,
) -> CustomerArchive:
    """
    Archive one customer folder to a ZIP and optionally delete the folder.

    Archive entries are relative to the vault root (`Run/CUST-002/...`), so
    unzipping into the vault restores the customer in place. The customer
    ID stays in the configuration either way.

    Args:
        config: Vault configuration
        customer_id: Customer to archive (need not be configured)
        confirm: Confirmation callback (overwrite and removal)
        output: Archive path (default: <vault>/_archive/<CODE>_<YYYYmmdd>.zip)
        remove: Delete the customer folder after a successful archive
        force: Overwrite an existing archive without asking
        dry_run: Only report what would be archived

    Returns:
        CustomerArchive

    Raises:
        ConfigFieldError: If the ID is not a non-negative integer
        ConfigError: If removal is requested without EnableCleanup
        VaultRootError: If the customer folder does not exist
        BackupError: If the archive cannot be written (nothing is deleted)
    """
    customer_id = parse_customer_id(customer_id)
    if remove and not config.enable_cleanup:
        raise ConfigError("Removing a customer folder requires EnableCleanup: true in the config")

    source = config.customer_dir(customer_id)
    if not source.is_dir():
        raise VaultRootError(f"Customer folder not found: {source}")

    archive_path = output or default_customer_archive(config, customer_id, clock)
    result = CustomerArchive(
        code=config.code(customer_id), source=source, archive=archive_path, dry_run=dry_run
    )

    if dry_run:
        result.files = sum(1 for p in source.rglob("*") if p.is_file())
        logger.info(
            "[DRY-RUN] Would archive %s (%d files) to %s", source, result.files, archive_path
        )
        if remove:
            logger.info("[DRY-RUN] Would remove CUST folder: %s", source)
        return result

    if archive_path.exists() and not force:
        if not confirm(f"Archive {archive_path.name} already exists. Overwrite?"):
            logger.info("Archive cancelled")
            result.cancelled = True
            return result

    logger.info("Archiving %s to %s", result.code, archive_path)
    result.files = write_archive(archive_path, source, config.vault_root)
    logger.info("Archive created: %s (%d files)", archive_path, result.files)

    if remove:
        logger.warning("This will permanently delete the customer folder: %s", source)
        if force or confirm(f"Remove {result.code} from the vault?"):
            shutil.rmtree(source)
            result.removed = True
            logger.info("Customer removed from vault: %s", source)
        else:
            logger.info("Customer not removed")

    return result


def cleanup_structure(
    config: Config,
    backup_dir: Path,
    confirm: Confirm,
    remove_hub: bool = False,
    create_backup: bool = True,
    dry_run: bool = False,
    clock: Callable[[], datetime] = datetime.now,
) -> CleanupReport:
    """
    Delete every configured customer folder under Run/.

    Args:
        config: Vault configuration (EnableCleanup must be true)
        backup_dir: Where the ZIP archive goes
        confirm: Confirmation callback
        remove_hub: Also delete Run-Hub.md
        create_backup: Archive before deleting
        dry_run: Only report what would be deleted

    Returns:
        CleanupReport

    Raises:
        ConfigError: If cleanup is not enabled in the configuration
        BackupError: If the archive fails (nothing is deleted)
    """
    if not config.enable_cleanup:
        raise ConfigError(
            "ABORT: Cleanup disabled. Set \"EnableCleanup\": true in the config to delete."
        )

    report = CleanupReport(dry_run=dry_run)

    for entry in config.invalid_customer_ids:
        message = f"Invalid CUST id (not an integer): {entry!r}"
        logger.error(message)
        report.errors.append(message)

    targets = [config.customer_dir(i) for i in config.customer_ids]
    targets = [path for path in targets if path.is_dir()]
    hub = config.hub_path if remove_hub and config.hub_path.is_file() else None

    if not config.customer_ids:
        logger.warning("No CUST ids defined in CustomerIds. Nothing to clean.")

    if dry_run:
        if create_backup:
            logger.info("[DRY-RUN] Would archive %s to %s", config.run_path, backup_dir)
        for path in targets:
            logger.info("[DRY-RUN] Would remove CUST folder: %s", path)
        if hub:
            logger.info("[DRY-RUN] Would remove hub file: %s", hub)
        report.removed = targets + ([hub] if hub else [])
        return report

    if not targets and hub is None:
        logger.info("Nothing to clean under: %s", config.run_path)
        return report

    logger.warning("This will delete %d CUST folder(s) under %s", len(targets), config.run_path)
    if not confirm("Delete these CUST folders?"):
        logger.info("Cleanup cancelled")
        report.cancelled = True
        return report

    if create_backup:
        report.archive = archive_structure(config, backup_dir, include_hub=remove_hub, clock=clock)
    else:
        logger.warning("Backup disabled - proceeding without backup")

    for path in targets:
        logger.warning("Removing CUST folder: %s", path)
        shutil.rmtree(path)
        report.removed.append(path)

    if hub is not None:
        logger.warning("Removing hub file: %s", hub)
        hub.unlink()
        report.removed.append(hub)

    logger.info("Cleanup completed.")
    return report
