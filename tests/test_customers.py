"""
Tests for customer and section management

Run with: pytest tests/test_customers.py -v
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from autovault.config import Config, load_config
from autovault.customers import add_customer, list_customers, parse_customer_id, remove_customer
from autovault.errors import ConfigError, ConfigFieldError
from autovault.prompts import assume_yes
from autovault.sections import add_section, list_sections, normalize_section, remove_section
from autovault.structure import generate


def never(question: str) -> bool:
    return False


def saved_ids(path: Path) -> list:
    return json.loads(path.read_text(encoding="utf-8"))["CustomerIds"]


def saved_sections(path: Path) -> list:
    return json.loads(path.read_text(encoding="utf-8"))["Sections"]


class TestParseCustomerId:
    @pytest.mark.parametrize("value,expected", [(4, 4), ("4", 4), (" 12 ", 12), ("007", 7)])
    def test_valid(self, value, expected):
        assert parse_customer_id(value) == expected

    @pytest.mark.parametrize("value", ["abc", "-1", -1, "", True, 2.5])
    def test_invalid(self, value):
        with pytest.raises(ConfigFieldError, match="non-negative integer"):
            parse_customer_id(value)


class TestAddCustomer:
    """Tests for add_customer"""

    def test_adds_sorted_and_creates_structure(self, config: Config, config_file, vault_root):
        updated = add_customer(config, config_file, "1")

        assert updated.customer_ids == (1, 2)
        assert saved_ids(config_file) == [1, 2]
        customer = vault_root / "Run" / "CUST-001"
        assert (customer / "CUST-001-RAISED" / "CUST-001-RAISED-Index.md").is_file()

    def test_duplicate_is_a_no_op(self, config: Config, config_file: Path, caplog):
        before = config_file.read_text(encoding="utf-8")

        assert add_customer(config, config_file, 2) is config
        assert config_file.read_text(encoding="utf-8") == before
        assert "already exists" in caplog.text

    def test_missing_vault_only_updates_config(self, write_config, config_data, tmp_path: Path):
        config_data["VaultRoot"] = str(tmp_path / "nowhere")
        config_file = write_config(config_data)

        add_customer(load_config(config_file), config_file, 9)

        assert saved_ids(config_file) == [2, 9]
        assert not (tmp_path / "nowhere").exists()

    def test_dry_run(self, config: Config, config_file: Path, vault_root: Path):
        before = config_file.read_text(encoding="utf-8")

        updated = add_customer(config, config_file, 4, dry_run=True)

        assert updated.customer_ids == (2, 4)
        assert config_file.read_text(encoding="utf-8") == before
        assert list(vault_root.iterdir()) == []


class TestRemoveCustomer:
    """Tests for remove_customer"""

    def test_removes_from_config_only(self, generated_vault: Config, config_file, vault_root):
        updated = remove_customer(generated_vault, config_file, 2, confirm=assume_yes)

        assert updated.customer_ids == ()
        assert saved_ids(config_file) == []
        assert (vault_root / "Run" / "CUST-002").is_dir()

    def test_unknown_id(self, config: Config, config_file: Path):
        with pytest.raises(ConfigFieldError, match="not found"):
            remove_customer(config, config_file, 99, confirm=assume_yes)

    def test_cancelled(self, config: Config, config_file: Path):
        assert remove_customer(config, config_file, 2, confirm=never) is None
        assert saved_ids(config_file) == [2]

    def test_dry_run_does_not_ask(self, config: Config, config_file: Path):
        asked = []

        def confirm(question):
            asked.append(question)
            return True

        updated = remove_customer(config, config_file, 2, confirm=confirm, dry_run=True)

        assert updated.customer_ids == ()
        assert asked == []
        assert saved_ids(config_file) == [2]

    def test_delete_folders_requires_cleanup(self, generated_vault, config_file, vault_root):
        with pytest.raises(ConfigError, match="EnableCleanup"):
            remove_customer(
                generated_vault, config_file, 2, confirm=assume_yes, delete_folders=True
            )
        assert (vault_root / "Run" / "CUST-002").is_dir()

    def test_delete_folders(self, write_config, config_data, vault_root: Path):
        config_data["EnableCleanup"] = True
        config_file = write_config(config_data)
        config = load_config(config_file)
        generate(config)

        remove_customer(config, config_file, 2, confirm=assume_yes, delete_folders=True)

        assert not (vault_root / "Run" / "CUST-002").exists()
        assert (vault_root / "Run").is_dir()


class TestListCustomers:
    def test_list(self, generated_vault: Config, vault_root: Path):
        (vault_root / "Run" / "CUST-002" / "CUST-002-FP" / "note.md").write_text("x")

        [entry] = list_customers(generated_vault)

        assert entry["id"] == 2
        assert entry["code"] == "CUST-002"
        assert entry["exists"] is True
        assert entry["sections"] == [
            {"name": "FP", "exists": True, "files": 2},
            {"name": "RAISED", "exists": True, "files": 1},
        ]

    def test_missing_folders(self, config: Config):
        [entry] = list_customers(config)
        assert entry["exists"] is False
        assert all(not s["exists"] and s["files"] == 0 for s in entry["sections"])


class TestSections:
    """Tests for section management"""

    def test_normalize(self):
        assert normalize_section(" raised ") == "RAISED"

    def test_normalize_empty(self):
        with pytest.raises(ConfigFieldError, match="empty"):
            normalize_section("  ")

    def test_add_creates_folders(self, generated_vault: Config, config_file, vault_root):
        updated = add_section(generated_vault, config_file, "divers", confirm=assume_yes)

        assert updated.sections == ("FP", "RAISED", "DIVERS")
        assert saved_sections(config_file) == ["FP", "RAISED", "DIVERS"]
        index = vault_root / "Run" / "CUST-002" / "CUST-002-DIVERS" / "CUST-002-DIVERS-Index.md"
        assert index.is_file()

    def test_add_existing_is_case_insensitive(self, config: Config, config_file: Path):
        assert add_section(config, config_file, "fp", confirm=assume_yes) is config

    def test_add_cancelled(self, config: Config, config_file: Path):
        assert add_section(config, config_file, "NEW", confirm=never) is None
        assert saved_sections(config_file) == ["FP", "RAISED"]

    def test_add_dry_run(self, generated_vault: Config, config_file: Path, vault_root: Path):
        updated = add_section(generated_vault, config_file, "NEW", confirm=never, dry_run=True)

        assert updated.sections[-1] == "NEW"
        assert saved_sections(config_file) == ["FP", "RAISED"]
        assert not (vault_root / "Run" / "CUST-002" / "CUST-002-NEW").exists()

    def test_remove_keeps_folders(self, generated_vault: Config, config_file, vault_root):
        updated = remove_section(generated_vault, config_file, "raised", confirm=assume_yes)

        assert updated.sections == ("FP",)
        assert saved_sections(config_file) == ["FP"]
        assert (vault_root / "Run" / "CUST-002" / "CUST-002-RAISED").is_dir()

    def test_remove_unknown(self, config: Config, config_file: Path):
        with pytest.raises(ConfigFieldError, match="not found"):
            remove_section(config, config_file, "NOPE", confirm=assume_yes)

    def test_remove_cancelled(self, config: Config, config_file: Path):
        assert remove_section(config, config_file, "FP", confirm=never) is None
        assert saved_sections(config_file) == ["FP", "RAISED"]

    def test_list_sections(self, write_config, config_data, vault_root: Path):
        config_data["CustomerIds"] = [2, 4]
        config = load_config(write_config(config_data))
        (vault_root / "Run" / "CUST-002" / "CUST-002-FP").mkdir(parents=True)

        assert list_sections(config) == [
            {"name": "FP", "existing": 1, "missing": 1, "total": 2},
            {"name": "RAISED", "existing": 0, "missing": 2, "total": 2},
        ]
