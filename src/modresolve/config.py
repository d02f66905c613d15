# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Configuration loading and validation for the module resolver."""

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from modresolve.models import DEFAULT_NAMESPACE_PREFIX, CyclePolicy

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = ".module_resolver.yml"

_NAMESPACE_PREFIX_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class ConfigurationError(Exception):
    """Raised when configuration validation fails critically."""

    pass


class Config:
    """Configuration for the module resolver.

    Loads configuration from .module_resolver.yml with validation and defaults.
    Invalid values are logged and replaced with their defaults; only an
    explicitly requested file that cannot be read raises ConfigurationError.
    """

    DEFAULTS = {
        # Which edges count as header-level when classifying cycles
        "cycle_policy": CyclePolicy.DEFAULT,
        # Promote implementation-only cycles from warnings to errors
        "fail_on_implementation_cycles": False,
        "check_public_interfaces": True,
        "check_duplicate_names": True,
        "namespace_prefix": DEFAULT_NAMESPACE_PREFIX,
        # Module names whose warnings are dropped from reports
        "suppress_warnings": [],
        "manifest_workers": 4,
        "enable_diagnostic_logging": False,
    }

    def __init__(self, config_path: Optional[Path] = None, strict: bool = False):
        """Initialize configuration.

        Args:
            config_path: Path to configuration file. If None, uses default location.
            strict: Raise ConfigurationError if the file exists but cannot be
                parsed, instead of falling back to defaults.
        """
        if config_path is None:
            config_path = Path.cwd() / DEFAULT_CONFIG_FILENAME

        self.config_path = config_path
        self._strict = strict
        self._config: Dict[str, Any] = {}
        self._load_config()

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "Config":
        """Build a configuration from an in-memory dict (validated like a file)."""
        config = cls.__new__(cls)
        config.config_path = None
        config._strict = False
        config._config = cls.DEFAULTS.copy()
        config._validate_and_merge(values)
        return config

    def _load_config(self) -> None:
        """Load and validate configuration from file."""
        if not self.config_path.exists():
            logger.info(f"Configuration file not found at {self.config_path}, using defaults")
            self._config = self.DEFAULTS.copy()
            return

        try:
            with open(self.config_path, encoding="utf-8") as f:
                loaded_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            if self._strict:
                raise ConfigurationError(
                    f"Error reading configuration file {self.config_path}: {e}"
                ) from e
            logger.warning(
                f"Error parsing configuration file {self.config_path}: {e}, using defaults"
            )
            self._config = self.DEFAULTS.copy()
            return

        if loaded_config is None:
            logger.warning("Configuration file is empty, using defaults")
            self._config = self.DEFAULTS.copy()
            return

        if not isinstance(loaded_config, dict):
            if self._strict:
                raise ConfigurationError(
                    f"Configuration file must contain a YAML dictionary, got {type(loaded_config)}"
                )
            logger.warning(
                f"Configuration file must contain a YAML dictionary, "
                f"got {type(loaded_config)}, using defaults"
            )
            self._config = self.DEFAULTS.copy()
            return

        # Start with defaults and override with loaded values
        self._config = self.DEFAULTS.copy()
        self._validate_and_merge(loaded_config)

    def _validate_and_merge(self, loaded_config: Dict[str, Any]) -> None:
        """Validate loaded configuration and merge with defaults.

        Invalid parameters are logged as warnings and defaults are used.
        """
        for key, value in loaded_config.items():
            if key not in self.DEFAULTS:
                logger.warning(f"Unknown configuration parameter '{key}', ignoring")
                continue

            if not self._validate_parameter(key, value):
                logger.warning(
                    f"Invalid value for '{key}': {value}, using default {self.DEFAULTS[key]}"
                )
                continue

            self._config[key] = value

    def _validate_parameter(self, key: str, value: Any) -> bool:
        """Validate a configuration parameter.

        Returns:
            True if valid, False if invalid
        """
        expected_type = type(self.DEFAULTS[key])
        # bool is a subclass of int; don't accept True as a worker count
        if expected_type is int and isinstance(value, bool):
            return False
        if not isinstance(value, expected_type):
            return False

        if key == "cycle_policy":
            return value in CyclePolicy.CHOICES
        elif key == "manifest_workers":
            return bool(0 < value <= 64)
        elif key == "namespace_prefix":
            # Empty prefix is allowed (namespaces become <NAME>_NS)
            return value == "" or bool(_NAMESPACE_PREFIX_PATTERN.match(value))
        elif key == "suppress_warnings":
            return all(isinstance(name, str) for name in value)

        return True

    def to_dict(self) -> Dict[str, Any]:
        """Effective configuration as a plain dict."""
        return dict(self._config)

    @property
    def cycle_policy(self) -> str:
        """Which edges are header-level for cycle detection (CyclePolicy value)."""
        value = self._config["cycle_policy"]
        assert isinstance(value, str)
        return value

    @property
    def fail_on_implementation_cycles(self) -> bool:
        """Whether implementation-only cycles block the build plan."""
        value = self._config["fail_on_implementation_cycles"]
        assert isinstance(value, bool)
        return value

    @property
    def check_public_interfaces(self) -> bool:
        """Whether public headers are checked for leaked private dependencies."""
        value = self._config["check_public_interfaces"]
        assert isinstance(value, bool)
        return value

    @property
    def check_duplicate_names(self) -> bool:
        """Whether normalized-name and namespace collisions are reported."""
        value = self._config["check_duplicate_names"]
        assert isinstance(value, bool)
        return value

    @property
    def namespace_prefix(self) -> str:
        """Prefix for derived namespace identifiers (e.g. "CPM")."""
        value = self._config["namespace_prefix"]
        assert isinstance(value, str)
        return value

    @property
    def suppress_warnings(self) -> List[str]:
        """Module names whose warnings are suppressed."""
        value = self._config["suppress_warnings"]
        assert isinstance(value, list)
        return value

    @property
    def manifest_workers(self) -> int:
        """Thread pool size for parsing manifest files."""
        value = self._config["manifest_workers"]
        assert isinstance(value, int)
        return value

    @property
    def enable_diagnostic_logging(self) -> bool:
        """Whether diagnostics are appended to the JSONL diagnostic log."""
        value = self._config["enable_diagnostic_logging"]
        assert isinstance(value, bool)
        return value
