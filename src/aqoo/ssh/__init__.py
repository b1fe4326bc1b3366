"""SSH communication layer for aqoo."""

from aqoo.ssh.client import build_ssh_command, open_passthrough
from aqoo.ssh.config import get_ssh_host, load_ssh_config, parse_ssh_config
from aqoo.ssh.keys import SSHKeyManager
from aqoo.ssh.session import RemoteSession
from aqoo.ssh.sysinfo import get_system_info

__all__ = [
    "RemoteSession",
    "SSHKeyManager",
    "build_ssh_command",
    "get_ssh_host",
    "get_system_info",
    "load_ssh_config",
    "open_passthrough",
    "parse_ssh_config",
]
