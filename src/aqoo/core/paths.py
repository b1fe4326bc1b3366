"""Application data directory and path utilities."""

import os
import platform
from pathlib import Path


def get_app_data_dir() -> Path:
    """Get the application data directory based on OS.

    Returns:
        Path to the application data directory.
        - Linux/macOS: ~/.aqoo
        - Windows: %APPDATA%/aqoo
    """
    system = platform.system()

    if system == "Windows":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "aqoo"
        else:
            return Path.home() / "AppData" / "Roaming" / "aqoo"
    else:
        return Path.home() / ".aqoo"


def get_keys_dir() -> Path:
    """Get the directory holding generated key pairs."""
    return get_app_data_dir() / "keys"


def get_registry_path() -> Path:
    """Get the managed host registry file."""
    return get_app_data_dir() / "hosts.json"


def get_default_config_path() -> Path:
    """Get the application configuration file."""
    return get_app_data_dir() / "config.json"


def get_default_ssh_config_path() -> Path:
    """Get the user's SSH client configuration file."""
    return Path.home() / ".ssh" / "config"


def expand_key_path(path: str, home: Path | None = None) -> str:
    """Normalize a key path from configuration.

    Strips surrounding whitespace and a single layer of quotes, then expands
    a leading ``~`` to the home directory.

    Args:
        path: Raw path value.
        home: Home directory to expand to. Uses the current user's if None.

    Returns:
        Normalized path string.
    """
    cleaned = path.strip()
    if cleaned[:1] in ("'", '"'):
        cleaned = cleaned[1:]
    if cleaned[-1:] in ("'", '"'):
        cleaned = cleaned[:-1]
    if cleaned.startswith("~"):
        cleaned = str(home if home is not None else Path.home()) + cleaned[1:]
    return cleaned
