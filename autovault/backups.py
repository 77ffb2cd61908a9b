"""
Backup/Restore for the AutoVault configuration file

Backups are plain copies of cust-run-config.json stored in the backup
directory as:

    cust-run-config.2025-01-15_10-30-00.manual.json
    cust-run-config.2025-01-15_10-31-12.pre-restore.json

A restore always backs up the current configuration first, so a restore
can itself be undone.

Usage:
    from autovault.backups import BackupManager

    manager = BackupManager(config_path, backup_dir)
    path = manager.create_backup("before-cleanup")
    manager.restore_backup(1)
"""

from __future__ import annotations

import json
import logging
import re
import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable

from .errors import BackupError
from .prompts import Choose, Confirm, ask_yes_no, choose_backup

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"
DEFAULT_DESCRIPTION = "manual"
PRE_RESTORE_DESCRIPTION = "pre-restore"
BACKUP_NAME_PATTERN = re.compile(r"\.(\d{4}-\d{2}-\d{2}_\d{2}-\d{2}-\d{2})\.[^.]+\.json$")
UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


def sanitize_description(description: str | None) -> str:
    """Reduce a description to [A-Za-z0-9_-]; empty becomes 'manual'."""
    cleaned = UNSAFE_CHARS.sub("-", (description or "").strip()).strip("-")
    return cleaned or DEFAULT_DESCRIPTION


def backup_time(path: Path) -> datetime | None:
    """Timestamp embedded in a backup file name, if it follows the naming scheme."""
    match = BACKUP_NAME_PATTERN.search(path.name)
    if not match:
        return None
    try:
        return datetime.strptime(match.group(1), TIMESTAMP_FORMAT)
    except ValueError:
        return None


def _sort_key(path: Path) -> tuple[float, str]:
    stamp = backup_time(path)
    moment = stamp.timestamp() if stamp else path.stat().st_mtime
    return (moment, path.name)


class BackupManager:
    """Creates, lists, restores and prunes configuration backups."""

    def __init__(
        self,
        config_path: Path,
        backup_dir: Path,
        confirm: Confirm = ask_yes_no,
        choose: Choose = choose_backup,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.config_path = config_path
        self.backup_dir = backup_dir
        self.confirm = confirm
        self.choose = choose
        self.clock = clock

    @property
    def prefix(self) -> str:
        return self.config_path.stem

    def list_backups(self) -> list[Path]:
        """Backups of this configuration file, most recent first.

        Only files named `<config stem>.<...>.json` count; other JSON files
        in the directory are never listed (and so never pruned).
        """
        if not self.backup_dir.is_dir():
            logger.debug("Backup directory does not exist: %s", self.backup_dir)
            return []

        files = [p for p in self.backup_dir.glob(f"{self.prefix}.*.json") if p.is_file()]
        return sorted(files, key=_sort_key, reverse=True)

    def backup_path(self, description: str) -> Path:
        """Next free backup path for a description at the current time."""
        stamp = self.clock().strftime(TIMESTAMP_FORMAT)
        base = sanitize_description(description)
        candidate = self.backup_dir / f"{self.prefix}.{stamp}.{base}.json"
        suffix = 2
        while candidate.exists():
            candidate = self.backup_dir / f"{self.prefix}.{stamp}.{base}-{suffix}.json"
            suffix += 1
        return candidate

    def create_backup(self, description: str = DEFAULT_DESCRIPTION, dry_run: bool = False) -> Path:
        """
        Copy the configuration file into the backup directory.

        Returns:
            Path of the backup (not created under dry-run)

        Raises:
            BackupError: If the configuration file does not exist
        """
        if not self.config_path.is_file():
            raise BackupError(f"No configuration file to backup: {self.config_path}")

        target = self.backup_path(description)
        if dry_run:
            logger.info("[DRY-RUN] Would create backup: %s", target.name)
            return target

        self.backup_dir.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(self.config_path, target)
        logger.info("Backup created: %s", target.name)
        return target

    def resolve(self, selector: int | str | Path) -> Path:
        """Turn a 1-based position or a path into a backup file path.

        Raises:
            BackupError: If the position is out of range
        """
        if isinstance(selector, bool):
            raise BackupError(f"Invalid backup selector: {selector!r}")

        if isinstance(selector, int) or (isinstance(selector, str) and selector.isdigit()):
            position = int(selector)
            backups = self.list_backups()
            if not 1 <= position <= len(backups):
                raise BackupError(f"Invalid backup number: {position} (have {len(backups)})")
            return backups[position - 1]

        path = Path(selector).expanduser()
        if path.is_absolute() or path.is_file():
            return path
        return self.backup_dir / path

    def restore_backup(
        self, selector: int | str | Path | None = None, dry_run: bool = False
    ) -> Path | None:
        """
        Replace the configuration file with a backup.

        Args:
            selector: Position in list_backups() (1 = most recent), a path
                (used as given when it exists, else relative to the backup
                directory), or None to choose
            dry_run: Validate and report without changing anything

        Returns:
            The restored backup, or None when cancelled or under dry-run

        Raises:
            BackupError: If the backup is missing or not valid JSON
        """
        if selector is None:
            backups = self.list_backups()
            if not backups:
                raise BackupError(f"No backups found in {self.backup_dir}")
            backup = self.choose(backups)
            if backup is None:
                logger.info("Restore cancelled")
                return None
        else:
            backup = self.resolve(selector)

        if not backup.is_file():
            raise BackupError(f"Backup file not found: {backup}")

        try:
            json.loads(backup.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise BackupError(f"Invalid JSON in backup file {backup}: {e}") from e

        logger.info("Backup file: %s", backup.name)
        logger.warning("This will overwrite the current configuration!")

        if dry_run:
            logger.info("[DRY-RUN] Would restore configuration from: %s", backup.name)
            return None

        if not self.confirm(f"Restore configuration from {backup.name}?"):
            logger.info("Restore cancelled")
            return None

        if self.config_path.is_file():
            pre_restore = self.create_backup(PRE_RESTORE_DESCRIPTION)
            logger.info("Current config backed up to: %s", pre_restore.name)

        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(backup, self.config_path)
        logger.info("Configuration restored from: %s", backup.name)
        return backup

    def cleanup(self, keep: int = 10, dry_run: bool = False) -> list[Path]:
        """
        Delete all but the `keep` most recent backups.

        Returns:
            Backups deleted (or that would be deleted under dry-run); empty
            when cancelled or when there is nothing to delete

        Raises:
            BackupError: If keep is negative
        """
        if keep < 0:
            raise BackupError(f"keep must be zero or more (got: {keep})")

        backups = self.list_backups()
        if len(backups) <= keep:
            logger.info("Only %d backups exist. Nothing to clean.", len(backups))
            return []

        stale = backups[keep:]
        logger.warning(
            "This will delete %d old backup(s), keeping the %d most recent.", len(stale), keep
        )

        if dry_run:
            for path in stale:
                logger.info("[DRY-RUN] Would delete: %s", path.name)
            return stale

        if not self.confirm(f"Delete {len(stale)} old backup(s)?"):
            logger.info("Cleanup cancelled")
            return []

        for path in stale:
            path.unlink()
            logger.debug("Deleted: %s", path.name)

        logger.info("Deleted %d old backup(s)", len(stale))
        return stale
