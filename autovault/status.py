"""
Status report for AutoVault
Summarizes the configuration, the vault on disk and the backups
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from .backups import BackupManager
from .codes import CODE_PREFIX
from .config import Config


def collect_status(
    config: Config, config_path: Path, backup_dir: Path | None = None
) -> dict[str, Any]:
    """
    Gather the state shown by the `status` command.

    Customers are "complete" when their folder and every section folder
    exist, "partial" when only some of them do, and "missing" otherwise.
    """
    run_path = config.run_path
    on_disk = 0
    if run_path.is_dir():
        on_disk = sum(1 for p in run_path.glob(f"{CODE_PREFIX}*") if p.is_dir())

    complete, partial, missing = [], [], []
    for customer_id in config.customer_ids:
        code = config.code(customer_id)
        if not config.customer_dir(customer_id).is_dir():
            missing.append(code)
        elif all(config.section_dir(customer_id, s).is_dir() for s in config.sections):
            complete.append(code)
        else:
            partial.append(code)

    status: dict[str, Any] = {
        "config": {
            "file": str(config_path),
            "exists": config_path.is_file(),
            "vault_root": str(config.vault_root),
            "customer_id_width": config.customer_id_width,
            "template_root": config.template_relative_root,
            "enable_cleanup": config.enable_cleanup,
        },
        "vault": {
            "exists": config.vault_root.is_dir(),
            "run_exists": run_path.is_dir(),
            "hub_exists": config.hub_path.is_file(),
            "customer_dirs": on_disk,
        },
        "customers": {
            "configured": len(config.customer_ids),
            "invalid": [repr(e) for e in config.invalid_customer_ids],
            "complete": complete,
            "partial": partial,
            "missing": missing,
        },
        "sections": list(config.sections),
    }

    if backup_dir is not None:
        backups = BackupManager(config_path, backup_dir).list_backups()
        status["backups"] = {
            "dir": str(backup_dir),
            "exists": backup_dir.is_dir(),
            "count": len(backups),
            "latest": backups[0].name if backups else None,
        }

    return status
