"""
Customer code and vault naming helpers.

    format_code(2, 3)                       -> "CUST-002"
    section_folder_name("CUST-002", "FP")   -> "CUST-002-FP"
    index_file_name("CUST-002-FP")          -> "CUST-002-FP-Index.md"
    hub_link("CUST-002")                    -> "Run/CUST-002/CUST-002-Index"
"""

from __future__ import annotations

CODE_PREFIX = "CUST-"
RUN_FOLDER = "Run"
HUB_FILE = "Run-Hub.md"
INDEX_SUFFIX = "-Index"


def format_code(customer_id: int, width: int) -> str:
    """Zero-pad a customer ID to `width` digits and prefix it with CUST-.

    An ID with more digits than `width` is emitted in full, never truncated.

    Raises:
        ValueError: If the ID is negative or not an integer
    """
    if isinstance(customer_id, bool) or not isinstance(customer_id, int):
        raise ValueError(f"Customer ID must be an integer (got: {customer_id!r})")
    if customer_id < 0:
        raise ValueError(f"Customer ID must not be negative (got: {customer_id})")
    return f"{CODE_PREFIX}{customer_id:0{max(width, 1)}d}"


def is_valid_customer_id(value: object) -> bool:
    """True for non-negative integers (JSON booleans excluded)."""
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def section_folder_name(code: str, section: str) -> str:
    return f"{code}-{section}"


def index_file_name(folder_name: str) -> str:
    return f"{folder_name}{INDEX_SUFFIX}.md"


def hub_token(code: str) -> str:
    """Text the hub file must contain for a customer."""
    return f"{code}{INDEX_SUFFIX}"


def hub_link(code: str) -> str:
    """Vault-relative wikilink target of a customer's root index."""
    return f"{RUN_FOLDER}/{code}/{hub_token(code)}"
