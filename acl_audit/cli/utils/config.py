"""Configuration file support for the acl-audit CLI."""

from pathlib import Path
from typing import Any, Dict, Optional

import toml
import yaml

from acl_audit.core.config import Settings
from acl_audit.core.errors import ConfigurationError


class ConfigManager:
    """Load settings values from an optional YAML or TOML file.

    File values sit between the environment and CLI flags: they override
    environment variables and ``.env``, and are overridden by flags.
    """

    def __init__(self, config_file: Optional[Path] = None):
        """
        Initialize configuration manager.

        Args:
            config_file: Optional path to a .yml/.yaml or .toml file

        Raises:
            ConfigurationError: If the file exists but cannot be parsed
        """
        self.config_path = config_file
        self.config: Dict[str, Any] = {}
        if config_file is not None:
            self._load_config()

    def _load_config(self):
        """Load configuration from file."""
        if not self.config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {self.config_path}", ["config"])

        # Determine file format and load
        suffix = self.config_path.suffix.lower()

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                if suffix == ".toml":
                    data = toml.load(f)
                else:
                    # Default to YAML
                    data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError, toml.TomlDecodeError) as e:
            raise ConfigurationError(
                f"Failed to load config {self.config_path}: {e}", ["config"]
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration file {self.config_path} must contain a mapping", ["config"]
            )

        # Unknown keys are ignored the same way the environment ignores them
        known = set(Settings.model_fields)
        self.config = {
            key.replace("-", "_"): value
            for key, value in data.items()
            if key.replace("-", "_") in known
        }

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        return self.config.get(key, default)

    def get_all(self) -> Dict[str, Any]:
        """Get all configuration values."""
        return self.config.copy()

    def merged_with(self, overrides: Dict[str, Any]) -> Dict[str, Any]:
        """File values with ``overrides`` applied; ``None`` overrides are ignored"""
        merged = self.get_all()
        merged.update({k: v for k, v in overrides.items() if v is not None})
        return merged
