"""Configuration management for aqoo."""

import json
import logging
from pathlib import Path
from typing import Any

from aqoo.core.paths import get_default_config_path
from aqoo.core.types import KnownHostsPolicy, Settings

logger = logging.getLogger(__name__)


class Config:
    """Configuration manager for aqoo."""

    def __init__(self, config_path: Path | None = None) -> None:
        """Initialize configuration manager.

        Args:
            config_path: Path to configuration file. If None, uses default.
        """
        self._config_path = config_path
        self._config_data: dict[str, Any] = {}

    @classmethod
    def from_file(cls, config_path: Path) -> "Config":
        """Load configuration from file.

        Args:
            config_path: Path to configuration file.

        Returns:
            Config instance with loaded configuration.
        """
        instance = cls(config_path)
        instance.load()
        return instance

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Create configuration from dictionary.

        Args:
            data: Configuration dictionary.

        Returns:
            Config instance.
        """
        instance = cls()
        instance._config_data = data
        return instance

    @classmethod
    def default(cls) -> "Config":
        """Load configuration from the application data directory."""
        return cls.from_file(get_default_config_path())

    def load(self) -> None:
        """Load configuration from file."""
        if self._config_path is None or not self._config_path.exists():
            return

        with open(self._config_path, encoding="utf-8") as f:
            self._config_data = json.load(f)
        logger.debug(f"Loaded configuration from {self._config_path}")

    def save(self, path: Path | None = None) -> None:
        """Save configuration to file.

        Args:
            path: Path to save configuration. Uses config_path if None.
        """
        save_path = path or self._config_path
        if save_path is None:
            raise ValueError("No path specified for saving configuration")

        save_path.parent.mkdir(parents=True, exist_ok=True)
        with open(save_path, "w", encoding="utf-8") as f:
            json.dump(self._config_data, f, indent=2, default=str)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value.

        Args:
            key: Configuration key (supports dot notation).
            default: Default value if key not found.

        Returns:
            Configuration value.
        """
        keys = key.split(".")
        value = self._config_data
        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value.

        Args:
            key: Configuration key (supports dot notation).
            value: Value to set.
        """
        keys = key.split(".")
        data = self._config_data
        for k in keys[:-1]:
            if k not in data:
                data[k] = {}
            data = data[k]
        data[keys[-1]] = value

    def to_settings(self) -> Settings:
        """Convert configuration to Settings.

        Returns:
            Settings instance.
        """
        paths = self.get("paths", {})
        ssh_data = self.get("ssh", {})
        provisioning = self.get("provisioning", {})

        path_fields = {
            "keys_dir": "keys_dir",
            "registry_path": "registry",
            "ssh_config_path": "ssh_config",
        }
        path_overrides = {
            field: Path(paths[key])
            for field, key in path_fields.items()
            if paths.get(key)
        }

        return Settings(
            **path_overrides,
            connect_timeout=ssh_data.get("connect_timeout", 30),
            command_timeout=ssh_data.get("command_timeout", 120.0),
            known_hosts_policy=KnownHostsPolicy(
                ssh_data.get("known_hosts_policy", "auto_add")
            ),
            settle_delay=provisioning.get("settle_delay", 2.0),
            default_username=provisioning.get("default_username", "aqoo-admin"),
        )

    @property
    def data(self) -> dict[str, Any]:
        """Get raw configuration data."""
        return self._config_data
