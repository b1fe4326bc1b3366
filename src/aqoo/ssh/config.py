"""SSH client configuration parsing."""

import logging
import re
from pathlib import Path
from typing import Any

from aqoo.core.errors import ConfigParseError
from aqoo.core.paths import expand_key_path, get_default_ssh_config_path
from aqoo.core.types import HostEntry

logger = logging.getLogger(__name__)

HOST_PATTERN = re.compile(r"^Host(?:\s*=\s*|\s+)(.+)$", re.IGNORECASE)
PROPERTY_PATTERN = re.compile(r"^(\w+)(?:\s*=\s*|\s+)(.+)$")


def _is_wildcard(alias: str) -> bool:
    return "*" in alias or "?" in alias


def _flush(block: dict[str, Any] | None, hosts: list[dict[str, Any]]) -> None:
    if block is not None and block["alias"]:
        hosts.append(block)


def parse_ssh_config(text: str, home: Path | None = None) -> list[HostEntry]:
    """Parse SSH client configuration text into host entries.

    Wildcard blocks and blocks without a ``HostName`` are dropped. Malformed
    content never raises; unparseable blocks are skipped.

    Args:
        text: Full configuration file content.
        home: Home directory used for ``~`` expansion in ``IdentityFile``.

    Returns:
        Host entries in file order.
    """
    blocks: list[dict[str, Any]] = []
    current: dict[str, Any] | None = None

    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue

        host_match = HOST_PATTERN.match(stripped)
        if host_match:
            _flush(current, blocks)
            current = {
                "alias": host_match.group(1).strip(),
                "hostname": None,
                "user": None,
                "port": 22,
                "identity_file": None,
                "options": {},
                "valid": True,
            }
            continue

        if current is None:
            continue

        prop_match = PROPERTY_PATTERN.match(stripped)
        if not prop_match:
            continue

        key, value = prop_match.group(1), prop_match.group(2).strip()
        lower_key = key.lower()
        if lower_key == "hostname":
            current["hostname"] = value
        elif lower_key == "user":
            current["user"] = value
        elif lower_key == "port":
            try:
                current["port"] = int(value)
            except ValueError:
                logger.debug(f"Invalid port {value!r} for host {current['alias']}")
                current["valid"] = False
        elif lower_key == "identityfile":
            current["identity_file"] = expand_key_path(value, home)
        else:
            current["options"][key] = value

    _flush(current, blocks)

    hosts: list[HostEntry] = []
    for block in blocks:
        if _is_wildcard(block["alias"]) or not block["hostname"]:
            continue
        if not block.pop("valid"):
            continue
        hosts.append(HostEntry(**block))
    return hosts


def read_ssh_config(path: Path | None = None) -> str:
    """Read SSH configuration file content.

    Args:
        path: Configuration file path. Uses ``~/.ssh/config`` if None.

    Returns:
        File content.

    Raises:
        ConfigParseError: If the file is missing or unreadable.
    """
    config_path = path or get_default_ssh_config_path()
    try:
        return config_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigParseError(f"Cannot read {config_path}: {e}") from e


def load_ssh_config(path: Path | None = None) -> list[HostEntry]:
    """Load host entries from an SSH configuration file.

    A missing or unreadable file yields an empty list.

    Args:
        path: Configuration file path. Uses ``~/.ssh/config`` if None.

    Returns:
        Host entries in file order.
    """
    try:
        text = read_ssh_config(path)
    except ConfigParseError as e:
        logger.warning(f"Error parsing SSH config: {e}")
        return []
    return parse_ssh_config(text)


def get_ssh_host(alias: str, path: Path | None = None) -> HostEntry | None:
    """Find a host entry by alias.

    Args:
        alias: Host alias as declared after ``Host``.
        path: Configuration file path.

    Returns:
        Matching HostEntry or None.
    """
    for host in load_ssh_config(path):
        if host.alias == alias:
            return host
    return None


def has_ssh_config(path: Path | None = None) -> bool:
    """Check whether the SSH configuration file exists."""
    return (path or get_default_ssh_config_path()).exists()
