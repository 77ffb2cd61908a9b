"""
AutoVault command line

Usage:
    autovault structure [--apply-templates]
    autovault templates {export|sync|apply}
    autovault test [--report FILE]
    autovault cleanup [--remove-hub] [--no-backup]
    autovault customer {add ID|remove ID [--delete-folders]|archive ID [--remove]|list}
    autovault section {add NAME|remove NAME|list}
    autovault backup {list [--all]|create [DESCRIPTION]|restore [SELECTOR]|cleanup [--keep N]}
    autovault validate
    autovault status

Global options go before the command:
    autovault --dry-run -v structure
    autovault --json test
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable

import yaml

from . import __version__
from .backups import BackupManager
from .cleanup import archive_customer, cleanup_structure
from .config import Config, load_config, validate_config
from .customers import add_customer, list_customers, remove_customer
from .errors import AutoVaultError
from .log import level_from_verbosity, setup_logging
from .prompts import Confirm, ask_yes_no, assume_yes, choose_backup
from .sections import add_section, list_sections, remove_section
from .settings import Settings, load_settings
from .status import collect_status
from .structure import generate
from .templates import apply_templates, export_templates, load_templates, sync_templates
from .verify import generate_report, verify

logger = logging.getLogger(__name__)


def emit(data: Any, output_format: str, render_text: Callable[[], None]) -> None:
    """Print data as JSON/YAML, or call the text renderer."""
    if output_format == "json":
        print(json.dumps(data, indent=2, ensure_ascii=False))
    elif output_format == "yaml":
        print(yaml.safe_dump(data, default_flow_style=False, sort_keys=False), end="")
    else:
        render_text()


def config_path_for(args: argparse.Namespace, settings: Settings) -> Path:
    return Path(args.config).expanduser() if args.config else settings.config_file


def templates_path_for(args: argparse.Namespace, settings: Settings) -> Path:
    return Path(args.templates).expanduser() if args.templates else settings.templates_file


def load_vault_config(args: argparse.Namespace, settings: Settings) -> Config:
    path = config_path_for(args, settings)
    logger.debug("Using configuration: %s", path)
    return load_config(path)


def confirm_for(args: argparse.Namespace) -> Confirm:
    return assume_yes if args.yes else ask_yes_no


# ---------------------------------------------------------------------------
# structure / templates / test
# ---------------------------------------------------------------------------


def cmd_structure(args: argparse.Namespace, settings: Settings) -> int:
    config = load_vault_config(args, settings)
    report = generate(config, dry_run=args.dry_run)
    data = report.to_dict()

    template_ok = True
    if args.apply_templates:
        template_set = load_templates(templates_path_for(args, settings))
        template_report = apply_templates(config, template_set, dry_run=args.dry_run)
        template_ok = template_report.ok
        data["templates"] = template_report.to_dict()

    def render() -> None:
        prefix = "[DRY-RUN] " if report.dry_run else ""
        print(f"\n{prefix}CUST Run structure: {config.run_path}")
        print("=" * 60)
        print(f"  Directories created: {len(report.created_dirs)}")
        print(f"  Files created:       {len(report.created_files)}")
        print(f"  Already present:     {len(report.existing)}")
        print(f"  Hub file:            {'written' if report.hub_written else 'preserved'}")
        if "templates" in data:
            print(f"  Templates applied:   {len(data['templates']['written'])}")
        for message in report.errors:
            print(f"  ❌ {message}")

    emit(data, args.format, render)
    return 0 if report.ok and template_ok else 1


def cmd_templates(args: argparse.Namespace, settings: Settings) -> int:
    config = load_vault_config(args, settings)
    templates_path = templates_path_for(args, settings)

    if args.action == "export":
        template_set = export_templates(config, templates_path, dry_run=args.dry_run)
        data = template_set.to_dict()
        emit(data, args.format, lambda: print(f"✅ Templates exported to: {templates_path}"))
        return 0

    template_set = load_templates(templates_path)

    if args.action == "sync":
        written = sync_templates(config, template_set, dry_run=args.dry_run)

        def render_sync() -> None:
            for path in written:
                print(f"  {'Would write' if args.dry_run else 'Written'}: {path}")
            print(f"\n✅ {len(written)} template(s) synced to: {config.template_root}")

        emit({"written": [str(p) for p in written]}, args.format, render_sync)
        return 0

    report = apply_templates(config, template_set, dry_run=args.dry_run)

    def render_apply() -> None:
        print(f"\nTemplates applied: {len(report.written)}")
        print(f"Skipped:           {len(report.skipped)}")
        for message in report.errors:
            print(f"  ❌ {message}")

    emit(report.to_dict(), args.format, render_apply)
    return 0 if report.ok else 1


def cmd_test(args: argparse.Namespace, settings: Settings) -> int:
    config = load_vault_config(args, settings)
    result = verify(config)

    if args.report:
        generate_report(result, config, Path(args.report).expanduser())

    def render() -> None:
        if result.ok and not result.warnings:
            print("✅ VERIFICATION SUCCESS - Run structure and all CUST indexes are present.")
            return
        if result.ok:
            print("⚠️  VERIFICATION COMPLETE WITH WARNINGS")
        else:
            print("❌ VERIFICATION FAILED - Issues detected:")
            for message in result.errors:
                print(f"  - {message}")
        if result.warnings:
            print("Warnings:")
            for message in result.warnings:
                print(f"  - {message}")

    emit(result.to_dict(), args.format, render)
    return 0 if result.ok else 1


# ---------------------------------------------------------------------------
# cleanup / customer / section
# ---------------------------------------------------------------------------


def cmd_cleanup(args: argparse.Namespace, settings: Settings) -> int:
    config = load_vault_config(args, settings)
    report = cleanup_structure(
        config,
        settings.backup_dir,
        confirm_for(args),
        remove_hub=args.remove_hub,
        create_backup=not args.no_backup,
        dry_run=args.dry_run,
    )

    def render() -> None:
        if report.cancelled:
            print("Cleanup cancelled")
            return
        verb = "Would remove" if report.dry_run else "Removed"
        for path in report.removed:
            print(f"  {verb}: {path}")
        if report.archive:
            print(f"\nBackup archive: {report.archive}")

    emit(report.to_dict(), args.format, render)
    return 0 if report.ok else 1


def cmd_customer(args: argparse.Namespace, settings: Settings) -> int:
    config = load_vault_config(args, settings)
    config_path = config_path_for(args, settings)

    if args.action == "add":
        add_customer(config, config_path, args.id, dry_run=args.dry_run)
        return 0

    if args.action in ("remove", "rm"):
        remove_customer(
            config,
            config_path,
            args.id,
            confirm_for(args),
            delete_folders=args.delete_folders,
            dry_run=args.dry_run,
        )
        return 0

    if args.action == "archive":
        result = archive_customer(
            config,
            args.id,
            confirm_for(args),
            output=Path(args.output).expanduser() if args.output else None,
            remove=args.remove,
            force=args.force,
            dry_run=args.dry_run,
        )

        def render_archive() -> None:
            if result.cancelled:
                print("Archive cancelled")
                return
            prefix = "[DRY-RUN] " if result.dry_run else ""
            print(f"\n{prefix}✅ {result.code}: {result.files} file(s) -> {result.archive}")
            if result.removed:
                print("  Status:  customer removed from vault")
            else:
                print("  Status:  customer still in vault")
            print(f"  Restore: unzip -d {config.vault_root} {result.archive}")

        emit(result.to_dict(), args.format, render_archive)
        return 0

    customers = list_customers(config)

    def render() -> None:
        if not customers:
            print("No customers configured")
            return
        print("\nConfigured customers:\n")
        for customer in customers:
            if not customer["exists"]:
                print(f"  ? {customer['code']} (directory not found)")
                continue
            print(f"  ✓ {customer['code']} ({customer['path']})")
            if args.verbose:
                for section in customer["sections"]:
                    if section["exists"]:
                        print(f"      └─ {section['name']} ({section['files']} files)")
                    else:
                        print(f"      └─ {section['name']} (missing)")
        print(f"\nTotal: {len(customers)} customers")

    emit(customers, args.format, render)
    return 0


def cmd_section(args: argparse.Namespace, settings: Settings) -> int:
    config = load_vault_config(args, settings)
    config_path = config_path_for(args, settings)

    if args.action == "add":
        add_section(config, config_path, args.name, confirm_for(args), dry_run=args.dry_run)
        return 0

    if args.action in ("remove", "rm"):
        remove_section(config, config_path, args.name, confirm_for(args), dry_run=args.dry_run)
        return 0

    sections = list_sections(config)

    def render() -> None:
        if not sections:
            print("No sections configured")
            return
        print("\nConfigured sections:\n")
        for section in sections:
            counts = f"{section['existing']}/{section['total']} customers"
            if section["missing"]:
                print(f"  ! {section['name']} ({counts}, {section['missing']} missing)")
            else:
                print(f"  ✓ {section['name']} ({counts})")
        print(f"\nTotal: {len(sections)} sections")

    emit(sections, args.format, render)
    return 0


# ---------------------------------------------------------------------------
# backup / validate / status
# ---------------------------------------------------------------------------


def cmd_backup(args: argparse.Namespace, settings: Settings) -> int:
    manager = BackupManager(
        config_path_for(args, settings),
        settings.backup_dir,
        confirm=confirm_for(args),
        choose=choose_backup,
    )

    if args.action == "create":
        path = manager.create_backup(args.description, dry_run=args.dry_run)
        emit({"backup": str(path)}, args.format, lambda: print(f"✅ Backup: {path.name}"))
        return 0

    if args.action == "restore":
        restored = manager.restore_backup(args.selector, dry_run=args.dry_run)

        def render_restore() -> None:
            if restored is not None:
                print(f"✅ Restored: {restored.name}")

        emit({"restored": str(restored) if restored else None}, args.format, render_restore)
        return 0

    if args.action == "cleanup":
        keep = args.keep if args.keep is not None else settings.backup_keep
        deleted = manager.cleanup(keep, dry_run=args.dry_run)
        data = {"deleted": [str(p) for p in deleted]}
        emit(data, args.format, lambda: print(f"Deleted {len(deleted)} old backup(s)"))
        return 0

    backups = manager.list_backups()
    shown = backups if args.all else backups[: settings.backup_list_limit]

    def render() -> None:
        if not backups:
            print(f"No backups found in {settings.backup_dir}")
            return
        print("\nAvailable backups:\n")
        for position, path in enumerate(shown, start=1):
            size_kb = path.stat().st_size / 1024
            print(f"  {position:2d}. {path.name}  ({size_kb:.1f} KB)")
        if len(shown) < len(backups):
            print(f"\n... and {len(backups) - len(shown)} more. Use --all to see all backups.")
        print(f"\nTotal: {len(backups)} backup(s) in {settings.backup_dir}")

    emit([str(p) for p in shown], args.format, render)
    return 0


def cmd_validate(args: argparse.Namespace, settings: Settings) -> int:
    config = load_vault_config(args, settings)
    errors, warnings = validate_config(config)
    for message in errors:
        logger.error(message)
    for message in warnings:
        logger.warning(message)

    def render() -> None:
        if errors:
            print(f"❌ Configuration has {len(errors)} error(s)")
        elif warnings:
            print(f"⚠️  Configuration is valid with {len(warnings)} warning(s)")
        else:
            print("✅ Configuration is valid")

    emit({"valid": not errors, "errors": errors, "warnings": warnings}, args.format, render)
    return 0 if not errors else 1


def cmd_status(args: argparse.Namespace, settings: Settings) -> int:
    config_path = config_path_for(args, settings)
    config = load_config(config_path)
    status = collect_status(config, config_path, settings.backup_dir)

    def mark(ok: bool) -> str:
        return "✓" if ok else "✗"

    def render() -> None:
        cfg, vault, customers = status["config"], status["vault"], status["customers"]
        print("\nAutoVault Status Report")
        print("=" * 60)
        print(f"  Config File:        {mark(cfg['exists'])} {cfg['file']}")
        print(f"  Vault Root:         {cfg['vault_root']}")
        print(f"  Customer ID Width:  {cfg['customer_id_width']}")
        print(f"  Template Root:      {cfg['template_root']}")
        print(f"  Vault Directory:    {mark(vault['exists'])}")
        print(f"  Run Directory:      {mark(vault['run_exists'])}")
        print(f"  Customer Dirs:      {vault['customer_dirs']} found on disk")
        print(f"\nCustomers ({customers['configured']} configured)")
        print("-" * 60)
        print(f"  Complete:           {len(customers['complete'])} / {customers['configured']}")
        print(f"  Partial:            {len(customers['partial'])}")
        print(f"  Missing:            {len(customers['missing'])}")
        print(f"\nSections ({len(status['sections'])} configured)")
        print("-" * 60)
        for section in status["sections"]:
            print(f"  - {section}")
        backups = status["backups"]
        print("\nBackups")
        print("-" * 60)
        print(f"  Backup Directory:   {mark(backups['exists'])} {backups['dir']}")
        print(f"  Backup Count:       {backups['count']}")
        if backups["latest"]:
            print(f"  Latest:             {backups['latest']}")

    emit(status, args.format, render)
    return 0


# ---------------------------------------------------------------------------
# parser / entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autovault",
        description="Organize an Obsidian vault into the CUST Run structure",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--settings", help="Settings YAML file (default: config/settings.yaml)")
    parser.add_argument("--config", help="Vault configuration JSON (overrides settings)")
    parser.add_argument("--templates", help="Templates JSON (overrides settings)")
    parser.add_argument(
        "--dry-run", action="store_true", help="Show what would change, write nothing"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug output")
    parser.add_argument("-q", "--quiet", action="store_true", help="Errors only")
    parser.add_argument("--silent", action="store_true", help="No log output")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument(
        "--format",
        choices=["text", "json", "yaml"],
        default="text",
        help="Output format (default: text)",
    )
    parser.add_argument(
        "--json", dest="format", action="store_const", const="json", help="Same as --format json"
    )
    parser.add_argument("-y", "--yes", action="store_true", help="Answer yes to confirmations")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    structure = subparsers.add_parser("structure", aliases=["new"], help="Create the Run structure")
    structure.add_argument(
        "--apply-templates", action="store_true", help="Apply index templates afterwards"
    )
    structure.set_defaults(handler=cmd_structure)

    templates = subparsers.add_parser("templates", help="Export, sync or apply templates")
    templates.add_argument(
        "action", nargs="?", choices=["export", "sync", "apply"], default="apply"
    )
    templates.set_defaults(handler=cmd_templates)

    test = subparsers.add_parser("test", aliases=["verify"], help="Verify the Run structure")
    test.add_argument("--report", metavar="FILE", help="Write a Markdown report")
    test.set_defaults(handler=cmd_test)

    cleanup = subparsers.add_parser("cleanup", help="Delete the configured CUST folders")
    cleanup.add_argument("--remove-hub", action="store_true", help="Also delete Run-Hub.md")
    cleanup.add_argument("--no-backup", action="store_true", help="Skip the ZIP backup")
    cleanup.set_defaults(handler=cmd_cleanup)

    customer = subparsers.add_parser("customer", help="Manage customer IDs")
    customer_actions = customer.add_subparsers(dest="action")
    customer_add = customer_actions.add_parser("add", help="Add a customer ID")
    customer_add.add_argument("id", help="Customer ID (number)")
    customer_remove = customer_actions.add_parser(
        "remove", aliases=["rm"], help="Remove a customer ID"
    )
    customer_remove.add_argument("id", help="Customer ID (number)")
    customer_remove.add_argument(
        "--delete-folders", action="store_true", help="Also delete the folders (EnableCleanup)"
    )
    customer_archive = customer_actions.add_parser(
        "archive", help="Archive a customer folder to a ZIP"
    )
    customer_archive.add_argument("id", help="Customer ID (number)")
    customer_archive.add_argument(
        "--remove", action="store_true", help="Delete the folder afterwards (EnableCleanup)"
    )
    customer_archive.add_argument(
        "-o", "--output", help="Archive path (default: <vault>/_archive/CUST-NNN_<date>.zip)"
    )
    customer_archive.add_argument(
        "--force", action="store_true", help="Overwrite and remove without asking"
    )
    customer_actions.add_parser("list", aliases=["ls"], help="List customers")
    customer.set_defaults(handler=cmd_customer, action="list")

    section = subparsers.add_parser("section", help="Manage sections")
    section_actions = section.add_subparsers(dest="action")
    section_add = section_actions.add_parser("add", help="Add a section")
    section_add.add_argument("name", help="Section name")
    section_remove = section_actions.add_parser("remove", aliases=["rm"], help="Remove a section")
    section_remove.add_argument("name", help="Section name")
    section_actions.add_parser("list", aliases=["ls"], help="List sections")
    section.set_defaults(handler=cmd_section, action="list")

    backup = subparsers.add_parser("backup", help="Manage configuration backups")
    backup_actions = backup.add_subparsers(dest="action")
    backup_list = backup_actions.add_parser("list", aliases=["ls"], help="List backups")
    backup_list.add_argument("-a", "--all", action="store_true", help="Show all backups")
    backup_create = backup_actions.add_parser("create", help="Back up the configuration")
    backup_create.add_argument("description", nargs="?", default="manual")
    backup_restore = backup_actions.add_parser("restore", help="Restore a backup")
    backup_restore.add_argument(
        "selector", nargs="?", help="Backup number (1 = newest) or file name"
    )
    backup_cleanup = backup_actions.add_parser("cleanup", help="Delete old backups")
    backup_cleanup.add_argument("--keep", type=int, help="Backups to keep (default: settings)")
    backup.set_defaults(handler=cmd_backup, action="list", all=False)

    validate = subparsers.add_parser("validate", help="Validate the configuration file")
    validate.set_defaults(handler=cmd_validate)

    status = subparsers.add_parser("status", help="Show configuration and vault status")
    status.set_defaults(handler=cmd_status)

    return parser


def resolve_log_level(args: argparse.Namespace, settings: Settings) -> int:
    if args.silent:
        return level_from_verbosity(0)
    if args.quiet:
        return level_from_verbosity(1)
    if args.verbose:
        return level_from_verbosity(4)
    return level_from_verbosity(settings.log_level)


def main(argv: list[str] | None = None) -> int:
    """Main entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    try:
        settings = load_settings(Path(args.settings).expanduser() if args.settings else None)
        level = resolve_log_level(args, settings)
    except (FileNotFoundError, ValueError) as e:
        setup_logging(color=not args.no_color)
        logger.error("%s", e)
        return 1

    setup_logging(level, color=settings.color and not args.no_color)

    try:
        return args.handler(args, settings)
    except AutoVaultError as e:
        logger.error("%s", e)
        return 1
    except OSError as e:
        logger.error("%s", e)
        logger.debug("Filesystem error in %s", args.command, exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
