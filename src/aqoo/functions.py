"""Python API for aqoo.

This module provides high-level functions for provisioning hosts and
working with managed hosts as a library.
"""

import logging
from collections.abc import Callable
from pathlib import Path

from aqoo.core.config import Config
from aqoo.core.errors import AqooError, HostNotFoundError
from aqoo.core.types import (
    ConnectionLog,
    HostEntry,
    ManagedHost,
    ProvisioningOutcome,
    ProvisioningRequest,
    ProvisioningState,
    Settings,
)
from aqoo.provisioning.provisioner import Provisioner, SessionFactory
from aqoo.ssh.client import open_passthrough
from aqoo.ssh.config import get_ssh_host, load_ssh_config
from aqoo.ssh.keys import SSHKeyManager
from aqoo.ssh.session import RemoteSession
from aqoo.ssh.sysinfo import get_system_info
from aqoo.store.registry import HostRegistry

logger = logging.getLogger(__name__)


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from a configuration file.

    Args:
        config_path: Path to the JSON configuration. Uses the application
            data directory if None.

    Returns:
        Settings instance.
    """
    if config_path is None:
        return Config.default().to_settings()
    return Config.from_file(Path(config_path)).to_settings()


def get_registry(settings: Settings | None = None) -> HostRegistry:
    """Open the managed host registry."""
    settings = settings or Settings()
    return HostRegistry(settings.registry_path)


def list_ssh_hosts(settings: Settings | None = None) -> list[HostEntry]:
    """List connectable hosts from the SSH client configuration."""
    settings = settings or Settings()
    return load_ssh_config(settings.ssh_config_path)


def provision_host(
    alias: str,
    username: str | None = None,
    name: str | None = None,
    notes: str | None = None,
    password: str | None = None,
    settings: Settings | None = None,
    on_state: Callable[[ProvisioningState], None] | None = None,
    session_factory: SessionFactory | None = None,
) -> ProvisioningOutcome:
    """Provision a managed user on a host from the SSH configuration.

    Args:
        alias: Host alias in the SSH configuration.
        username: Managed user name. Uses the configured default if None.
        name: Name of the managed host record. Defaults to ``<alias>-managed``.
        notes: Optional notes stored with the record.
        password: Password for the original login.
        settings: Application settings.
        on_state: Called on every workflow state transition.
        session_factory: Overrides how remote sessions are opened.

    Returns:
        Provisioning outcome.

    Raises:
        HostNotFoundError: If the alias is not a connectable host.
        DuplicateHostError: If a managed host with the same name exists.
    """
    settings = settings or Settings()
    target = get_ssh_host(alias, settings.ssh_config_path)
    if target is None:
        raise HostNotFoundError(alias)

    request = ProvisioningRequest(
        target=target,
        username=username or settings.default_username,
        name=name or "",
        notes=notes or None,
    )
    provisioner = Provisioner(
        key_manager=SSHKeyManager(settings.keys_dir),
        session_factory=session_factory,
        registry=get_registry(settings),
        settings=settings,
        on_state=on_state,
    )
    return provisioner.run(request, password=password)


def list_managed_hosts(settings: Settings | None = None) -> list[ManagedHost]:
    """List all managed hosts."""
    return get_registry(settings).get_all_hosts()


def get_managed_host(name: str, registry: HostRegistry) -> ManagedHost:
    """Get a managed host by name.

    Raises:
        HostNotFoundError: If the host is not registered.
    """
    host = registry.get_host_by_name(name)
    if host is None:
        raise HostNotFoundError(name)
    return host


def connect_host(name: str, settings: Settings | None = None) -> int:
    """Open an interactive SSH session to a managed host.

    Returns:
        Exit code of the ssh client.
    """
    settings = settings or Settings()
    registry = get_registry(settings)
    host = get_managed_host(name, registry)

    registry.update_last_accessed(host.id)
    try:
        exit_code = open_passthrough(host.endpoint(settings.connect_timeout))
    except AqooError as e:
        registry.log_connection(host.id, "ssh", False, str(e))
        raise

    if exit_code == 0:
        registry.log_connection(host.id, "ssh", True)
    else:
        registry.log_connection(
            host.id, "ssh", False, f"SSH session exited with code {exit_code}"
        )
    return exit_code


def _open_managed_session(host: ManagedHost, settings: Settings) -> RemoteSession:
    return RemoteSession.open(
        host.endpoint(settings.connect_timeout),
        command_timeout=settings.command_timeout,
        known_hosts_policy=settings.known_hosts_policy,
    )


def get_host_system_info(
    name: str, settings: Settings | None = None
) -> dict[str, str]:
    """Collect system information from a managed host.

    Raises:
        HostNotFoundError: If the host is not registered.
        SSHConnectionError: If the host cannot be reached.
    """
    settings = settings or Settings()
    registry = get_registry(settings)
    host = get_managed_host(name, registry)

    try:
        with _open_managed_session(host, settings) as session:
            info = get_system_info(session)
    except AqooError as e:
        registry.log_connection(host.id, "info", False, str(e))
        raise

    registry.log_connection(host.id, "info", True)
    return info


def check_host_connection(name: str, settings: Settings | None = None) -> ManagedHost:
    """Check that a managed host accepts the managed user's key.

    Returns:
        The tested host.

    Raises:
        HostNotFoundError: If the host is not registered.
        SSHConnectionError: If the connection fails.
    """
    settings = settings or Settings()
    registry = get_registry(settings)
    host = get_managed_host(name, registry)

    try:
        _open_managed_session(host, settings).close()
    except AqooError as e:
        registry.log_connection(host.id, "test", False, str(e))
        raise

    registry.log_connection(host.id, "test", True)
    return host


def get_connection_logs(
    name: str | None = None,
    limit: int = 50,
    settings: Settings | None = None,
) -> list[ConnectionLog]:
    """Get connection logs, optionally for a single managed host."""
    registry = get_registry(settings)
    host_id = get_managed_host(name, registry).id if name else None
    return registry.get_connection_logs(host_id, limit=limit)


def remove_host(
    name: str, delete_keys: bool = True, settings: Settings | None = None
) -> ManagedHost:
    """Remove a managed host from the registry.

    The remote user is left untouched.

    Args:
        name: Managed host name.
        delete_keys: Also delete the local key files.
        settings: Application settings.

    Returns:
        The removed host.
    """
    registry = get_registry(settings)
    host = get_managed_host(name, registry)
    registry.delete_host(host.id)

    if delete_keys:
        private_key_path = Path(host.private_key_path)
        SSHKeyManager(private_key_path.parent).delete_key_pair(private_key_path.name)
        logger.info(f"Deleted key pair {private_key_path}")
    return host
