# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for configuration loading and validation."""

import tempfile
from pathlib import Path

import pytest
import yaml

from modresolve.config import Config, ConfigurationError


def test_default_config_when_file_missing():
    """Test that defaults are used when config file is missing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "nonexistent.yml"
        config = Config(config_path=config_path)

        # Check all defaults
        assert config.cycle_policy == "header_includes"
        assert config.fail_on_implementation_cycles is False
        assert config.check_public_interfaces is True
        assert config.check_duplicate_names is True
        assert config.namespace_prefix == "CPM"
        assert config.suppress_warnings == []
        assert config.manifest_workers == 4
        assert config.enable_diagnostic_logging is False


def test_default_location_is_working_directory(tmp_path, monkeypatch):
    """Test that .module_resolver.yml in the working directory is picked up."""
    (tmp_path / ".module_resolver.yml").write_text("cycle_policy: all\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    config = Config()

    assert config.config_path == tmp_path / ".module_resolver.yml"
    assert config.cycle_policy == "all"


def test_valid_config_loading():
    """Test loading a valid configuration file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yml"
        config_data = {
            "cycle_policy": "exported",
            "fail_on_implementation_cycles": True,
            "namespace_prefix": "ACME",
            "manifest_workers": 8,
        }

        with open(config_path, "w") as f:
            yaml.dump(config_data, f)

        config = Config(config_path=config_path)

        assert config.cycle_policy == "exported"
        assert config.fail_on_implementation_cycles is True
        assert config.namespace_prefix == "ACME"
        assert config.manifest_workers == 8
        # Defaults for unspecified values
        assert config.check_public_interfaces is True


def test_invalid_parameter_values():
    """Test that invalid parameter values are rejected and defaults used."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yml"
        config_data = {
            "cycle_policy": "sometimes",  # Invalid: not a known policy
            "manifest_workers": 0,  # Invalid: must be > 0
            "namespace_prefix": "9-lives",  # Invalid: not an identifier
        }

        with open(config_path, "w") as f:
            yaml.dump(config_data, f)

        config = Config(config_path=config_path)

        # Should use defaults for invalid values
        assert config.cycle_policy == "header_includes"
        assert config.manifest_workers == 4
        assert config.namespace_prefix == "CPM"


def test_invalid_parameter_types():
    """Test that invalid parameter types are rejected and defaults used."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yml"
        config_data = {
            "manifest_workers": "not_a_number",
            "check_public_interfaces": "not_a_boolean",
            "suppress_warnings": "not_a_list",
        }

        with open(config_path, "w") as f:
            yaml.dump(config_data, f)

        config = Config(config_path=config_path)

        # Should use defaults for invalid types
        assert config.manifest_workers == 4
        assert config.check_public_interfaces is True
        assert config.suppress_warnings == []


def test_boolean_rejected_as_worker_count():
    """Test that true/false are not accepted as integers."""
    config = Config.from_dict({"manifest_workers": True})
    assert config.manifest_workers == 4


def test_unknown_parameters_ignored():
    """Test that unknown parameters are ignored."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yml"
        config_data = {
            "manifest_workers": 2,
            "unknown_parameter": "some_value",
            "another_unknown": 123,
        }

        with open(config_path, "w") as f:
            yaml.dump(config_data, f)

        config = Config(config_path=config_path)

        # Known parameters should be loaded
        assert config.manifest_workers == 2
        # Unknown parameters should be ignored (no error)
        assert "unknown_parameter" not in config.to_dict()


def test_empty_config_file():
    """Test that an empty config file uses all defaults."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yml"
        config_path.write_text("", encoding="utf-8")

        config = Config(config_path=config_path)

        assert config.to_dict() == Config.DEFAULTS


def test_invalid_yaml_syntax():
    """Test that invalid YAML syntax falls back to defaults."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yml"
        config_path.write_text("invalid: yaml: syntax: here:", encoding="utf-8")

        config = Config(config_path=config_path)

        # Should use all defaults
        assert config.cycle_policy == "header_includes"
        assert config.manifest_workers == 4


def test_invalid_yaml_syntax_strict():
    """Test that strict mode raises on unparseable files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yml"
        config_path.write_text("invalid: yaml: syntax: here:", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            Config(config_path=config_path, strict=True)


def test_non_mapping_strict():
    """Test that strict mode raises when the file is not a mapping."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yml"
        config_path.write_text("- just\n- a list\n", encoding="utf-8")

        assert Config(config_path=config_path).cycle_policy == "header_includes"
        with pytest.raises(ConfigurationError):
            Config(config_path=config_path, strict=True)


def test_list_parameters():
    """Test that list parameters are handled correctly."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yml"
        config_data = {"suppress_warnings": ["module1", "e1m1"]}

        with open(config_path, "w") as f:
            yaml.dump(config_data, f)

        config = Config(config_path=config_path)

        assert config.suppress_warnings == ["module1", "e1m1"]


def test_list_with_non_string_rejected():
    """Test that suppress_warnings must only contain strings."""
    config = Config.from_dict({"suppress_warnings": ["module1", 3]})
    assert config.suppress_warnings == []


def test_empty_namespace_prefix_allowed():
    """Test that an empty namespace prefix is accepted."""
    assert Config.from_dict({"namespace_prefix": ""}).namespace_prefix == ""


def test_from_dict_matches_file_loading():
    """Test that in-memory configs validate like files."""
    values = {"cycle_policy": "all", "enable_diagnostic_logging": True}
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yml"
        with open(config_path, "w") as f:
            yaml.dump(values, f)

        assert Config(config_path=config_path).to_dict() == Config.from_dict(values).to_dict()
