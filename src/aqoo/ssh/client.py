"""Interactive SSH passthrough using the system ssh client."""

import logging
import subprocess

from aqoo.core.errors import SSHConnectionError
from aqoo.core.paths import expand_key_path
from aqoo.core.types import SSHEndpoint

logger = logging.getLogger(__name__)


def build_ssh_command(
    endpoint: SSHEndpoint,
    command: str | None = None,
    extra_options: list[str] | None = None,
) -> list[str]:
    """Build SSH command line.

    Args:
        endpoint: Remote endpoint.
        command: Remote command to execute.
        extra_options: Additional SSH options.

    Returns:
        Command line as list.
    """
    cmd = ["ssh"]

    if endpoint.private_key_path:
        cmd.extend(["-i", expand_key_path(endpoint.private_key_path)])

    cmd.extend(
        [
            "-p",
            str(endpoint.port),
            "-o",
            "StrictHostKeyChecking=no",
            "-o",
            "UserKnownHostsFile=/dev/null",
        ]
    )

    if extra_options:
        cmd.extend(extra_options)

    cmd.append(f"{endpoint.username}@{endpoint.host}")

    if command:
        cmd.append(command)

    return cmd


def open_passthrough(endpoint: SSHEndpoint) -> int:
    """Open an interactive SSH session attached to the terminal.

    Blocks until the remote side disconnects.

    Args:
        endpoint: Remote endpoint.

    Returns:
        Exit code of the ssh process; non-zero means abnormal exit.

    Raises:
        SSHConnectionError: If the ssh client cannot be started.
    """
    ssh_cmd = build_ssh_command(endpoint)
    logger.info(f"Opening interactive session to {endpoint.username}@{endpoint.host}")
    try:
        result = subprocess.run(ssh_cmd)
    except OSError as e:
        raise SSHConnectionError(f"Cannot start ssh client: {e}") from e

    if result.returncode != 0:
        logger.warning(f"SSH session exited with code {result.returncode}")
    return result.returncode
