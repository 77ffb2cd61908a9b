"""
Template Engine for AutoVault
Manages the index/note templates and applies them to the CUST Run structure

The JSON store (config/templates.json) is the source of truth:

    {
      "version": "1.0",
      "description": "...",
      "obsidian": {"templateFolder": "_templates/Run"},
      "templates": {
        "index": {"root": "...", "sections": {"FP": "...", ...}},
        "notes": {"FP": "...", ...}
      }
    }

The files in the vault's template folder are working copies: `sync` writes
them from the store, `export` reads them back into it.

Placeholders: {{CUST_CODE}}, {{SECTION}}, {{NOW_UTC}}, {{NOW_LOCAL}}
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from .config import Config, normalize_separators
from .errors import ConfigParseError, TemplateMissingError, VaultRootError

logger = logging.getLogger(__name__)

PLACEHOLDERS = ("CUST_CODE", "SECTION", "NOW_UTC", "NOW_LOCAL")
TOKEN_PATTERN = re.compile(r"\{\{([A-Za-z0-9_]+)\}\}")

UTC_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
LOCAL_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

ROOT_TEMPLATE_FILE = "CUST-Root-Index.md"
SECTION_TEMPLATE_GLOB = "CUST-Section-*-Index.md"
DEFAULT_VERSION = "1.0"
DEFAULT_DESCRIPTION = "AutoVault templates for CUST Run structure"


def section_template_file(section: str) -> str:
    return f"CUST-Section-{section}-Index.md"


def note_template_file(section: str) -> str:
    return f"RUN - New {section} note.md"


def apply(body: str, bindings: dict[str, str]) -> str:
    """Substitute the known placeholders in a template body.

    Known tokens missing from `bindings` become empty strings; any other
    {{...}} token is left untouched.

    Args:
        body: Template text
        bindings: Placeholder name -> value

    Returns:
        Rendered text
    """

    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in PLACEHOLDERS:
            return match.group(0)
        return str(bindings.get(name, ""))

    return TOKEN_PATTERN.sub(replace, body)


def timestamp_pair(now: datetime) -> tuple[str, str]:
    """Format one instant as (NOW_UTC, NOW_LOCAL)."""
    return (
        now.astimezone(timezone.utc).strftime(UTC_FORMAT),
        now.astimezone().strftime(LOCAL_FORMAT),
    )


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TemplateSet:
    """Template bodies keyed by logical name."""

    root: str | None = None
    sections: dict[str, str] = field(default_factory=dict)
    notes: dict[str, str] = field(default_factory=dict)
    version: str = DEFAULT_VERSION
    description: str = DEFAULT_DESCRIPTION
    template_folder: str = ""

    def missing_for(self, sections: tuple[str, ...] | list[str]) -> list[str]:
        """Logical names of required index templates that are absent."""
        missing = []
        if self.root is None:
            missing.append("root")
        missing.extend(f"section '{s}'" for s in sections if s not in self.sections)
        return missing

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "description": self.description,
            "obsidian": {"templateFolder": self.template_folder},
            "templates": {
                "index": {"root": self.root or "", "sections": dict(self.sections)},
                "notes": dict(self.notes),
            },
        }


def _string_map(value: Any, where: str) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict) or not all(isinstance(v, str) for v in value.values()):
        raise ConfigParseError(f"'{where}' must map section names to strings")
    return dict(value)


def load_templates(path: Path) -> TemplateSet:
    """
    Load the template store.

    Raises:
        TemplateMissingError: If the file does not exist
        ConfigParseError: If the file is not valid JSON or has the wrong layout
    """
    if not path.exists():
        raise TemplateMissingError(f"Templates JSON not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigParseError(f"Invalid JSON in templates file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigParseError(f"Templates file must contain a JSON object: {path}")

    templates = data.get("templates") or {}
    index = templates.get("index") or {}
    obsidian = data.get("obsidian") or {}

    root = index.get("root")
    if root is not None and not isinstance(root, str):
        raise ConfigParseError("'templates.index.root' must be a string")

    template_set = TemplateSet(
        root=root,
        sections=_string_map(index.get("sections"), "templates.index.sections"),
        notes=_string_map(templates.get("notes"), "templates.notes"),
        version=str(data.get("version", DEFAULT_VERSION)),
        description=str(data.get("description", DEFAULT_DESCRIPTION)),
        template_folder=str(obsidian.get("templateFolder", "")),
    )
    logger.debug(
        "Loaded templates from %s (%d section, %d note templates)",
        path,
        len(template_set.sections),
        len(template_set.notes),
    )
    return template_set


def save_templates(template_set: TemplateSet, path: Path, dry_run: bool = False) -> None:
    if dry_run:
        logger.info("[DRY-RUN] Would write templates JSON: %s", path)
        return

    path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(template_set.to_dict(), indent=2, ensure_ascii=False) + "\n"
    path.write_text(content, encoding="utf-8")
    logger.info("Templates written to: %s", path)


@dataclass
class TemplateReport:
    """Outcome of applying templates to the Run structure."""

    dry_run: bool = False
    written: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "dry_run": self.dry_run,
            "written": [str(p) for p in self.written],
            "skipped": [str(p) for p in self.skipped],
            "errors": self.errors,
            "ok": self.ok,
        }


def _write_rendered(path: Path, content: str, report: TemplateReport) -> None:
    if not path.exists():
        logger.warning("Index does not exist yet, will create: %s", path)

    if report.dry_run:
        logger.info("[DRY-RUN] Would apply template to: %s", path)
    else:
        path.write_text(content, encoding="utf-8")
        logger.info("Template applied to: %s", path)
    report.written.append(path)


def apply_templates(
    config: Config,
    template_set: TemplateSet,
    dry_run: bool = False,
    clock: Callable[[], datetime] | None = None,
) -> TemplateReport:
    """
    Render the root and section index files of every customer.

    Args:
        config: Vault configuration
        template_set: Loaded template store
        dry_run: Report without writing
        clock: Returns the current time (injected for tests)

    Returns:
        TemplateReport

    Raises:
        TemplateMissingError: If the root or a configured section template is absent
        VaultRootError: If <VaultRoot>/Run does not exist
    """
    missing = template_set.missing_for(config.sections)
    if missing:
        raise TemplateMissingError(f"Aborting: template missing for {', '.join(missing)}")

    if not config.run_path.is_dir():
        raise VaultRootError(f"Run folder does not exist: {config.run_path}")

    clock = clock or _utc_now
    report = TemplateReport(dry_run=dry_run)
    root_body = template_set.root or ""

    for entry in config.invalid_customer_ids:
        message = f"Invalid CUST id (not an integer): {entry!r}"
        logger.error(message)
        report.errors.append(message)

    for customer_id in config.customer_ids:
        code = config.code(customer_id)
        customer_dir = config.customer_dir(customer_id)
        if not customer_dir.is_dir():
            logger.warning("CUST folder missing, skipping %s: %s", code, customer_dir)
            report.skipped.append(customer_dir)
            continue

        now_utc, now_local = timestamp_pair(clock())
        bindings = {"CUST_CODE": code, "SECTION": "", "NOW_UTC": now_utc, "NOW_LOCAL": now_local}

        _write_rendered(config.root_index_path(customer_id), apply(root_body, bindings), report)

        for section in config.sections:
            section_dir = config.section_dir(customer_id, section)
            if not section_dir.is_dir():
                logger.warning(
                    "Subfolder missing for %s (%s), skipping: %s", code, section, section_dir
                )
                report.skipped.append(section_dir)
                continue

            content = apply(template_set.sections[section], {**bindings, "SECTION": section})
            _write_rendered(config.section_index_path(customer_id, section), content, report)

    logger.info("Template application completed.")
    return report


def export_templates(config: Config, templates_path: Path, dry_run: bool = False) -> TemplateSet:
    """
    Read the vault's template folder back into the JSON store.

    Sections exported are the configured ones plus any other
    CUST-Section-*-Index.md found in the folder.

    Raises:
        TemplateMissingError: If the template folder or the root template is missing
    """
    template_dir = config.template_root
    logger.info("Exporting templates from: %s", template_dir)

    if not template_dir.is_dir():
        raise TemplateMissingError(f"Template directory does not exist: {template_dir}")

    root_file = template_dir / ROOT_TEMPLATE_FILE
    if not root_file.is_file():
        raise TemplateMissingError(f"Root template not found: {root_file}")

    sections = list(config.sections)
    for path in sorted(template_dir.glob(SECTION_TEMPLATE_GLOB)):
        name = path.name[len("CUST-Section-") : -len("-Index.md")]
        if name and name not in sections:
            sections.append(name)

    template_set = TemplateSet(
        root=root_file.read_text(encoding="utf-8"),
        template_folder=normalize_separators(config.template_relative_root),
    )
    if templates_path.exists():
        previous = load_templates(templates_path)
        template_set.version = previous.version
        template_set.description = previous.description

    for section in sections:
        section_file = template_dir / section_template_file(section)
        if section_file.is_file():
            template_set.sections[section] = section_file.read_text(encoding="utf-8")
        else:
            logger.warning("Section template not found, not exported: %s", section_file)

        note_file = template_dir / note_template_file(section)
        if note_file.is_file():
            template_set.notes[section] = note_file.read_text(encoding="utf-8")

    save_templates(template_set, templates_path, dry_run=dry_run)
    return template_set


def sync_templates(config: Config, template_set: TemplateSet, dry_run: bool = False) -> list[Path]:
    """Write every template of the store into the vault's template folder.

    Returns:
        Paths written (or that would be written under dry-run)
    """
    template_dir = config.template_root
    logger.info("Syncing templates to: %s", template_dir)

    if not template_dir.is_dir():
        if dry_run:
            logger.info("[DRY-RUN] Would create directory: %s", template_dir)
        else:
            template_dir.mkdir(parents=True, exist_ok=True)
            logger.info("Created template directory: %s", template_dir)

    files: list[tuple[str, str]] = []
    if template_set.root is not None:
        files.append((ROOT_TEMPLATE_FILE, template_set.root))
    files.extend((section_template_file(s), body) for s, body in template_set.sections.items())
    files.extend((note_template_file(s), body) for s, body in template_set.notes.items())

    written = []
    for filename, content in files:
        path = template_dir / filename
        if dry_run:
            logger.info("[DRY-RUN] Would write: %s", path)
        else:
            path.write_text(content, encoding="utf-8")
            logger.debug("Written: %s", path)
        written.append(path)

    logger.info("Templates synced to: %s", template_dir)
    return written
