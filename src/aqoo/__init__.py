"""aqoo - Provision key-authenticated admin users on SSH hosts.

This package reads hosts from the SSH client configuration, creates a
dedicated administrative user on a chosen host, installs a freshly generated
key for it and keeps a local registry of the managed hosts.
"""

from aqoo.core.config import Config
from aqoo.core.types import (
    AlreadyExists,
    ConnectionFailed,
    HostEntry,
    KeyPair,
    ManagedHost,
    OutcomeStatus,
    ProvisioningOutcome,
    ProvisioningRequest,
    Settings,
    SSHEndpoint,
    StepFailed,
    Succeeded,
    VerificationFailed,
)
from aqoo.functions import (
    check_host_connection,
    connect_host,
    get_connection_logs,
    get_host_system_info,
    list_managed_hosts,
    list_ssh_hosts,
    load_settings,
    provision_host,
    remove_host,
)
from aqoo.provisioning.provisioner import Provisioner

__version__ = "0.1.0"

__all__ = [
    # Core types
    "Config",
    "HostEntry",
    "KeyPair",
    "ManagedHost",
    "ProvisioningRequest",
    "Settings",
    "SSHEndpoint",
    # Outcomes
    "AlreadyExists",
    "ConnectionFailed",
    "OutcomeStatus",
    "ProvisioningOutcome",
    "StepFailed",
    "Succeeded",
    "VerificationFailed",
    # Workflow
    "Provisioner",
    "provision_host",
    # Host functions
    "check_host_connection",
    "connect_host",
    "get_connection_logs",
    "get_host_system_info",
    "list_managed_hosts",
    "list_ssh_hosts",
    "load_settings",
    "remove_host",
]


def main() -> None:
    """CLI entry point."""
    import sys

    from aqoo.cli import main as cli_main

    sys.exit(cli_main())
