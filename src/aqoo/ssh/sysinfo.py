"""Remote system information."""

import logging
from typing import Protocol

from aqoo.core.errors import AqooError
from aqoo.core.types import RemoteCommandResult

logger = logging.getLogger(__name__)

SYSTEM_INFO_COMMANDS: dict[str, str] = {
    "os": 'cat /etc/os-release | grep PRETTY_NAME | cut -d= -f2 | tr -d \\"',
    "kernel": "uname -r",
    "uptime": "uptime -p",
    "memory": "free -h | grep Mem | awk '{print $2}'",
    "cpu": "nproc",
    "hostname": "hostname",
}

UNAVAILABLE = "N/A"


class CommandRunner(Protocol):
    """Anything that can run a remote command."""

    def exec(
        self, command: str, timeout: float | None = None
    ) -> RemoteCommandResult: ...


def get_system_info(session: CommandRunner) -> dict[str, str]:
    """Collect basic system information from a remote host.

    Each item is collected independently; items that fail are reported as
    ``N/A``.

    Args:
        session: Open remote session.

    Returns:
        Mapping of info key to value.
    """
    info: dict[str, str] = {}
    for key, command in SYSTEM_INFO_COMMANDS.items():
        try:
            result = session.exec(command)
        except AqooError as e:
            logger.debug(f"System info {key} unavailable: {e}")
            info[key] = UNAVAILABLE
            continue
        value = result.stdout.strip()
        info[key] = value if result.ok and value else UNAVAILABLE
    return info
