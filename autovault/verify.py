"""
Verifier for AutoVault
Walks the expected CUST Run structure and reports what is missing

Nothing is repaired: errors mean the structure is incomplete, warnings are
informational and do not affect the exit code.

Usage:
    from autovault.verify import verify, generate_report

    result = verify(config)
    if not result.ok:
        print(generate_report(result))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from .codes import hub_token
from .config import Config

logger = logging.getLogger(__name__)


@dataclass
class VerificationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    checked: int = 0

    @property
    def ok(self) -> bool:
        return not self.errors

    def error(self, message: str) -> None:
        logger.error(message)
        self.errors.append(message)

    def warning(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "checked": self.checked,
            "errors": self.errors,
            "warnings": self.warnings,
        }


def verify(config: Config) -> VerificationResult:
    """
    Check the Run structure of every configured customer.

    Order: vault root, Run/, hub file, then per customer its folder, root
    index and each section folder and index. A missing customer folder
    skips that customer's remaining checks; a missing section folder skips
    that section's index check.

    Args:
        config: Vault configuration

    Returns:
        VerificationResult (ok iff no errors)
    """
    result = VerificationResult()

    if not config.vault_root.is_dir():
        result.error(f"Vault root does NOT exist: {config.vault_root}")

    if not config.run_path.is_dir():
        result.error(f"Run folder does NOT exist: {config.run_path}")
    else:
        logger.info("Run folder exists: %s", config.run_path)

    hub_content: str | None = None
    if not config.hub_path.is_file():
        result.error(f"Run-Hub.md does NOT exist: {config.hub_path}")
    else:
        logger.info("Hub file exists: %s", config.hub_path)
        hub_content = config.hub_path.read_text(encoding="utf-8")

    if not config.customer_ids and not config.invalid_customer_ids:
        result.warning("No CUST ids defined in CustomerIds. Nothing to verify.")

    for entry in config.invalid_customer_ids:
        result.error(f"Invalid CUST id (not an integer): {entry!r}")

    for customer_id in config.customer_ids:
        _verify_customer(config, customer_id, hub_content, result)

    _log_outcome(result)
    return result


def _verify_customer(
    config: Config, customer_id: int, hub_content: str | None, result: VerificationResult
) -> None:
    code = config.code(customer_id)
    customer_dir = config.customer_dir(customer_id)
    result.checked += 1

    if not customer_dir.is_dir():
        result.error(f"MISSING CUST folder: {customer_dir}")
        return
    logger.info("CUST folder OK: %s", customer_dir)

    root_index = config.root_index_path(customer_id)
    if not root_index.is_file():
        result.error(f"MISSING root index for {code}: {root_index}")
    else:
        logger.debug("Root index OK: %s", root_index)

    for section in config.sections:
        section_dir = config.section_dir(customer_id, section)
        if not section_dir.is_dir():
            result.error(f"MISSING subfolder {section_dir.name} for {code}: {section_dir}")
            continue
        logger.debug("Subfolder OK: %s", section_dir)

        section_index = config.section_index_path(customer_id, section)
        if not section_index.is_file():
            result.error(f"MISSING subfolder index {section_dir.name} for {code}: {section_index}")
        else:
            logger.debug("Subfolder index OK: %s", section_index)

    if hub_content is not None:
        token = hub_token(code)
        if token not in hub_content:
            result.warning(f"Hub file does not contain reference to {token}")
        else:
            logger.debug("Hub contains reference to %s", token)


def _log_outcome(result: VerificationResult) -> None:
    if not result.ok:
        logger.error("VERIFICATION FAILED - %d issue(s) detected", len(result.errors))
    elif result.warnings:
        logger.warning("VERIFICATION COMPLETE WITH WARNINGS - Review logged warnings.")
    else:
        logger.info("VERIFICATION SUCCESS - Run structure and all CUST indexes are present.")


def generate_report(
    result: VerificationResult, config: Config | None = None, output_path: Path | None = None
) -> str:
    """Render a Markdown verification report, optionally saving it to a file."""
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    status = "PASSED" if result.ok else "FAILED"

    report = f"""# CUST Run Verification Report

**Date**: {timestamp}
**Status**: {status}
**Customers Checked**: {result.checked}
**Errors**: {len(result.errors)}
**Warnings**: {len(result.warnings)}
"""
    if config is not None:
        report += f"**Vault**: `{config.vault_root}`\n"

    report += "\n---\n"

    if result.errors:
        report += f"\n## Errors ({len(result.errors)})\n\n"
        report += "".join(f"- {message}\n" for message in result.errors)

    if result.warnings:
        report += f"\n## Warnings ({len(result.warnings)})\n\n"
        report += "".join(f"- {message}\n" for message in result.warnings)

    if result.ok and not result.warnings:
        report += "\nRun structure and all CUST indexes are present.\n"

    if output_path is not None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(report, encoding="utf-8")
        logger.info("Report saved to: %s", output_path)

    return report
