"""
Interactive confirmation and selection for destructive AutoVault operations.

Operations receive these as callbacks (`confirm`, `choose`) so they can be
driven without a terminal: `assume_yes` backs the --yes flag, and when stdin
is not a terminal the interactive versions fail closed.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable

logger = logging.getLogger(__name__)

Confirm = Callable[[str], bool]
Choose = Callable[[list[Path]], "Path | None"]


def _interactive() -> bool:
    return hasattr(sys.stdin, "isatty") and sys.stdin.isatty()


def ask_yes_no(question: str) -> bool:
    """Ask a [y/N] question on the terminal; anything but y/yes is a no."""
    if not _interactive():
        logger.warning("No terminal to confirm '%s'; use --yes to proceed", question)
        return False

    try:
        response = input(f"{question} [y/N]: ").strip().lower()
    except EOFError:
        return False
    return response in ("y", "yes")


def assume_yes(question: str) -> bool:
    logger.debug("Auto-confirmed: %s", question)
    return True


def choose_backup(backups: list[Path]) -> Path | None:
    """Let the user pick a backup by number; empty input or 'q' cancels."""
    if not backups:
        return None
    if not _interactive():
        logger.warning("No terminal to select a backup; pass a number or a path")
        return None

    print("\nAvailable backups:")
    for position, path in enumerate(backups, start=1):
        print(f"  [{position}] {path.name}")

    while True:
        try:
            choice = input("\nSelect backup number (q to cancel): ").strip().lower()
        except EOFError:
            return None
        if choice in ("", "q", "quit"):
            return None
        if choice.isdigit() and 1 <= int(choice) <= len(backups):
            return backups[int(choice) - 1]
        print(f"  Invalid choice. Enter a number between 1 and {len(backups)}.")
