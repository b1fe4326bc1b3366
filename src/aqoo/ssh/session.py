"""Authenticated remote sessions over SSH."""

import logging
import os
import socket
import time

import paramiko

from aqoo.core.errors import CommandTimeoutError, KeyNotFoundError, SSHConnectionError
from aqoo.core.paths import expand_key_path
from aqoo.core.types import KnownHostsPolicy, RemoteCommandResult, SSHEndpoint

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 32768
POLL_INTERVAL = 0.01


def _host_key_policy(policy: KnownHostsPolicy) -> paramiko.MissingHostKeyPolicy:
    if policy is KnownHostsPolicy.STRICT:
        return paramiko.RejectPolicy()
    elif policy is KnownHostsPolicy.WARNING:
        return paramiko.WarningPolicy()
    return paramiko.AutoAddPolicy()


def _drain(
    channel: paramiko.Channel, timeout: float | None
) -> tuple[bytes, bytes]:
    """Read stdout and stderr of a channel until the command exits.

    Both streams are read as data arrives, so a command filling one stream
    cannot block on the other.

    Raises:
        socket.timeout: If the command is still running after ``timeout``.
    """
    deadline = None if timeout is None else time.monotonic() + timeout
    stdout_chunks: list[bytes] = []
    stderr_chunks: list[bytes] = []
    while True:
        received = False
        if channel.recv_ready():
            stdout_chunks.append(channel.recv(READ_CHUNK_SIZE))
            received = True
        if channel.recv_stderr_ready():
            stderr_chunks.append(channel.recv_stderr(READ_CHUNK_SIZE))
            received = True
        if received:
            continue
        if channel.exit_status_ready():
            if channel.recv_ready() or channel.recv_stderr_ready():
                continue
            break
        if deadline is not None and time.monotonic() > deadline:
            raise socket.timeout()
        time.sleep(POLL_INTERVAL)
    return b"".join(stdout_chunks), b"".join(stderr_chunks)


def resolve_key_path(path: str) -> str:
    """Resolve and validate a private key path.

    Args:
        path: Raw key path, possibly quoted or starting with ``~``.

    Returns:
        Normalized path.

    Raises:
        KeyNotFoundError: If the key file does not exist.
    """
    key_path = expand_key_path(path)
    if not os.path.isfile(key_path):
        raise KeyNotFoundError(key_path)
    return key_path


class RemoteSession:
    """An open SSH session able to run commands on the remote host."""

    def __init__(
        self,
        endpoint: SSHEndpoint,
        client: paramiko.SSHClient,
        command_timeout: float | None = None,
    ) -> None:
        """Initialize remote session.

        Use :meth:`open` to establish a connection.

        Args:
            endpoint: Endpoint the client is connected to.
            client: Connected paramiko client.
            command_timeout: Default per-command timeout in seconds.
        """
        self._endpoint = endpoint
        self._client: paramiko.SSHClient | None = client
        self._command_timeout = command_timeout

    @classmethod
    def open(
        cls,
        endpoint: SSHEndpoint,
        command_timeout: float | None = None,
        known_hosts_policy: KnownHostsPolicy = KnownHostsPolicy.AUTO_ADD,
    ) -> "RemoteSession":
        """Establish an authenticated session.

        Password authentication is used when a password is given, otherwise
        the endpoint's private key. Without either, the SSH agent and default
        key locations are tried.

        Args:
            endpoint: Connection parameters.
            command_timeout: Default per-command timeout in seconds.
            known_hosts_policy: How to treat unknown host keys.

        Returns:
            Connected RemoteSession.

        Raises:
            KeyNotFoundError: If the configured private key does not exist.
            SSHConnectionError: On network or authentication failure.
        """
        connect_kwargs: dict = {
            "hostname": endpoint.host,
            "port": endpoint.port,
            "username": endpoint.username,
            "timeout": endpoint.timeout,
            "banner_timeout": endpoint.timeout,
            "auth_timeout": endpoint.timeout,
        }
        if endpoint.password:
            connect_kwargs.update(
                password=endpoint.password, allow_agent=False, look_for_keys=False
            )
        elif endpoint.private_key_path:
            connect_kwargs.update(
                key_filename=resolve_key_path(endpoint.private_key_path),
                allow_agent=False,
                look_for_keys=False,
            )

        client = paramiko.SSHClient()
        client.load_system_host_keys()
        client.set_missing_host_key_policy(_host_key_policy(known_hosts_policy))

        target = f"{endpoint.username}@{endpoint.host}:{endpoint.port}"
        logger.debug(f"Connecting to {target}")
        try:
            client.connect(**connect_kwargs)
        except paramiko.AuthenticationException as e:
            client.close()
            raise SSHConnectionError(f"Authentication failed for {target}: {e}") from e
        except (paramiko.SSHException, OSError) as e:
            client.close()
            raise SSHConnectionError(f"Cannot connect to {target}: {e}") from e

        logger.info(f"Connected to {target}")
        return cls(endpoint, client, command_timeout=command_timeout)

    @property
    def endpoint(self) -> SSHEndpoint:
        """Get the connected endpoint."""
        return self._endpoint

    @property
    def is_open(self) -> bool:
        """Whether the session has not been closed."""
        return self._client is not None

    def exec(self, command: str, timeout: float | None = None) -> RemoteCommandResult:
        """Execute a command in a fresh channel.

        Output is buffered in full. A non-zero exit code is returned, not
        raised.

        Args:
            command: Shell command to execute.
            timeout: Command timeout in seconds. Uses the session default if None.

        Returns:
            RemoteCommandResult with exit code, stdout and stderr.

        Raises:
            CommandTimeoutError: If the command exceeds its timeout.
            SSHConnectionError: If the session is closed or the channel fails.
        """
        if self._client is None:
            raise SSHConnectionError("Session is closed")

        effective_timeout = timeout if timeout is not None else self._command_timeout
        logger.debug(f"Executing on {self._endpoint.host}: {command}")
        try:
            _, stdout, _ = self._client.exec_command(
                command, timeout=effective_timeout
            )
            stdout_data, stderr_data = _drain(stdout.channel, effective_timeout)
            exit_code = stdout.channel.recv_exit_status()
        except socket.timeout as e:
            raise CommandTimeoutError(command, effective_timeout or 0) from e
        except paramiko.SSHException as e:
            raise SSHConnectionError(f"Command channel failed: {e}") from e

        logger.debug(f"Command finished with exit code {exit_code}")
        return RemoteCommandResult(
            exit_code,
            stdout_data.decode("utf-8", errors="replace"),
            stderr_data.decode("utf-8", errors="replace"),
        )

    def close(self) -> None:
        """Close the session."""
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.debug(f"Closed session to {self._endpoint.host}")

    def __enter__(self) -> "RemoteSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
