"""Tests for the vault configuration loader."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from autovault.config import (
    REQUIRED_FIELDS,
    Config,
    config_to_dict,
    load_config,
    parse_config,
    save_config,
    validate_config,
)
from autovault.errors import (
    ConfigError,
    ConfigFieldError,
    ConfigNotFoundError,
    ConfigParseError,
)


class TestLoadConfig:
    """Tests for load_config"""

    def test_load_valid(self, config_file: Path, vault_root: Path):
        """Test loading the sample configuration"""
        config = load_config(config_file)

        assert config.vault_root == vault_root
        assert config.customer_id_width == 3
        assert config.customer_ids == (2,)
        assert config.sections == ("FP", "RAISED")
        assert config.template_relative_root == "_templates/Run"
        assert config.enable_cleanup is False
        assert config.invalid_customer_ids == ()

    def test_missing_file(self, tmp_path: Path):
        """Test that a missing file raises ConfigNotFoundError"""
        with pytest.raises(ConfigNotFoundError, match="not found"):
            load_config(tmp_path / "missing.json")

    def test_missing_file_is_file_not_found(self, tmp_path: Path):
        """Test that callers can catch the standard FileNotFoundError"""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.json")

    def test_malformed_json(self, tmp_path: Path):
        """Test that malformed JSON raises ConfigParseError"""
        path = tmp_path / "bad.json"
        path.write_text("{ not json", encoding="utf-8")
        with pytest.raises(ConfigParseError, match="Invalid JSON"):
            load_config(path)

    def test_top_level_not_object(self, tmp_path: Path):
        """Test that a JSON array is rejected"""
        path = tmp_path / "list.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ConfigParseError, match="JSON object"):
            load_config(path)

    @pytest.mark.parametrize("field", REQUIRED_FIELDS)
    def test_missing_required_field(self, write_config, config_data, field):
        """Test that each required field is enforced and named in the error"""
        del config_data[field]
        with pytest.raises(ConfigFieldError) as exc_info:
            load_config(write_config(config_data))
        assert exc_info.value.field == field
        assert field in str(exc_info.value)

    def test_errors_are_config_errors(self, write_config, config_data):
        """Test the exception hierarchy"""
        del config_data["Sections"]
        with pytest.raises(ConfigError):
            load_config(write_config(config_data))


class TestParseConfigFields:
    """Tests for field validation in parse_config"""

    @pytest.mark.parametrize("value", [0, 11, -3])
    def test_width_out_of_range(self, config_data, value):
        config_data["CustomerIdWidth"] = value
        with pytest.raises(ConfigFieldError, match="between 1 and 10"):
            parse_config(config_data)

    @pytest.mark.parametrize("value", ["3", 3.5, True])
    def test_width_wrong_type(self, config_data, value):
        config_data["CustomerIdWidth"] = value
        with pytest.raises(ConfigFieldError, match="CustomerIdWidth"):
            parse_config(config_data)

    @pytest.mark.parametrize("value", [42, "", "   ", ["a"]])
    def test_vault_root_must_be_string(self, config_data, value):
        config_data["VaultRoot"] = value
        with pytest.raises(ConfigFieldError, match="VaultRoot"):
            parse_config(config_data)

    def test_customer_ids_must_be_array(self, config_data):
        config_data["CustomerIds"] = "2,4"
        with pytest.raises(ConfigFieldError, match="must be an array"):
            parse_config(config_data)

    def test_duplicate_customer_ids(self, config_data):
        config_data["CustomerIds"] = [2, 4, 2]
        with pytest.raises(ConfigFieldError, match="duplicate customer ID: 2"):
            parse_config(config_data)

    def test_invalid_customer_ids_are_kept_aside(self, config_data):
        """Test that bad entries don't fail the load but are recorded"""
        config_data["CustomerIds"] = [2, "x", -1, True, 5]
        config = parse_config(config_data)

        assert config.customer_ids == (2, 5)
        assert config.invalid_customer_ids == ("x", -1, True)

    @pytest.mark.parametrize("sections", [["FP", ""], ["FP", 3], "FP"])
    def test_bad_sections(self, config_data, sections):
        config_data["Sections"] = sections
        with pytest.raises(ConfigFieldError, match="Sections"):
            parse_config(config_data)

    def test_duplicate_sections(self, config_data):
        config_data["Sections"] = ["FP", "FP"]
        with pytest.raises(ConfigFieldError, match="duplicate section"):
            parse_config(config_data)

    def test_template_root_must_be_string(self, config_data):
        config_data["TemplateRelativeRoot"] = ["_templates"]
        with pytest.raises(ConfigFieldError, match="TemplateRelativeRoot"):
            parse_config(config_data)

    def test_enable_cleanup_defaults_false(self, config_data):
        assert parse_config(config_data).enable_cleanup is False

    def test_enable_cleanup_true(self, config_data):
        config_data["EnableCleanup"] = True
        assert parse_config(config_data).enable_cleanup is True

    def test_enable_cleanup_must_be_boolean(self, config_data):
        config_data["EnableCleanup"] = "yes"
        with pytest.raises(ConfigFieldError, match="EnableCleanup"):
            parse_config(config_data)

    def test_vault_root_tilde_expanded(self, config_data, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("HOME", str(tmp_path))
        config_data["VaultRoot"] = "~/Obsidian/Vault"
        assert parse_config(config_data).vault_root == tmp_path / "Obsidian" / "Vault"

    def test_backslashes_normalized(self, config_data):
        config_data["VaultRoot"] = "vaults\\work"
        config_data["TemplateRelativeRoot"] = "\\_templates\\Run"
        config = parse_config(config_data)

        assert config.vault_root == Path("vaults/work")
        assert config.template_root == Path("vaults/work/_templates/Run")


class TestConfigPaths:
    """Tests for the paths derived from a Config"""

    def test_paths(self, config: Config, vault_root: Path):
        assert config.run_path == vault_root / "Run"
        assert config.hub_path == vault_root / "Run-Hub.md"
        assert config.customer_dir(2) == vault_root / "Run" / "CUST-002"
        assert config.root_index_path(2) == vault_root / "Run" / "CUST-002" / "CUST-002-Index.md"
        assert config.section_dir(2, "FP") == vault_root / "Run" / "CUST-002" / "CUST-002-FP"
        assert config.section_index_path(2, "FP") == (
            vault_root / "Run" / "CUST-002" / "CUST-002-FP" / "CUST-002-FP-Index.md"
        )


class TestValidateConfig:
    """Tests for validate_config"""

    def test_clean_config(self, config: Config):
        assert validate_config(config) == ([], [])

    def test_invalid_ids_are_errors(self, write_config, config_data):
        config_data["CustomerIds"] = [2, "x"]
        errors, _ = validate_config(load_config(write_config(config_data)))
        assert len(errors) == 1
        assert "'x'" in errors[0]

    def test_empty_lists_warn(self, write_config, config_data):
        config_data["CustomerIds"] = []
        config_data["Sections"] = []
        errors, warnings = validate_config(load_config(write_config(config_data)))

        assert errors == []
        assert "CustomerIds array is empty" in warnings
        assert "Sections array is empty" in warnings

    def test_id_wider_than_width_warns(self, write_config, config_data):
        config_data["CustomerIds"] = [1234]
        _, warnings = validate_config(load_config(write_config(config_data)))
        assert any("CUST-1234" in w for w in warnings)

    def test_missing_vault_warns(self, write_config, config_data, tmp_path: Path):
        config_data["VaultRoot"] = str(tmp_path / "nowhere")
        errors, warnings = validate_config(load_config(write_config(config_data)))
        assert errors == []
        assert any("does not exist" in w for w in warnings)

    def test_vault_root_is_file(self, write_config, config_data, tmp_path: Path):
        blocker = tmp_path / "file.txt"
        blocker.write_text("x")
        config_data["VaultRoot"] = str(blocker)
        errors, _ = validate_config(load_config(write_config(config_data)))
        assert any("not a directory" in e for e in errors)


class TestSaveConfig:
    """Tests for config_to_dict and save_config"""

    def test_round_trip(self, config: Config, tmp_path: Path):
        target = tmp_path / "out" / "cust-run-config.json"
        assert save_config(config, target) is True
        assert load_config(target) == config

    def test_key_order_and_format(self, config: Config, tmp_path: Path):
        target = tmp_path / "cust-run-config.json"
        save_config(config, target)
        text = target.read_text(encoding="utf-8")

        assert text.endswith("}\n")
        assert list(json.loads(text)) == [
            "VaultRoot",
            "CustomerIdWidth",
            "CustomerIds",
            "Sections",
            "TemplateRelativeRoot",
            "EnableCleanup",
        ]
        assert '\n  "CustomerIdWidth": 3,' in text

    def test_unchanged_file_not_rewritten(self, config: Config, tmp_path: Path):
        target = tmp_path / "cust-run-config.json"
        save_config(config, target)
        assert save_config(config, target) is False

    def test_dry_run_writes_nothing(self, config: Config, tmp_path: Path):
        target = tmp_path / "cust-run-config.json"
        assert save_config(config, target, dry_run=True) is True
        assert not target.exists()

    def test_invalid_ids_preserved(self, write_config, config_data):
        config_data["CustomerIds"] = [2, "x"]
        config = load_config(write_config(config_data))
        assert config_to_dict(config)["CustomerIds"] == [2, "x"]
