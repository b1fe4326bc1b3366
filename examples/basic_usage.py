#!/usr/bin/env python3
"""Basic aqoo usage example.

This example demonstrates how to:
- List hosts from ~/.ssh/config
- Provision a managed admin user on one of them
- Query the managed host and read its connection logs

Usage:
    python basic_usage.py <alias> [username]
"""

import sys

from aqoo import (
    get_connection_logs,
    get_host_system_info,
    list_ssh_hosts,
    load_settings,
    provision_host,
)
from aqoo.core.types import ProvisioningState


def show_state(state: ProvisioningState) -> None:
    print(f"  -> {state.value}")


def basic_workflow(alias: str, username: str | None = None) -> int:
    """Provision ``alias`` and inspect the result."""
    settings = load_settings()

    print("=== SSH hosts ===")
    for host in list_ssh_hosts(settings):
        print(f"{host.alias}: {host.description}")

    print(f"\n=== Provisioning {alias} ===")
    outcome = provision_host(
        alias, username=username, settings=settings, on_state=show_state
    )
    if not outcome.ok:
        print(f"Setup failed: {outcome.reason}")
        return 1

    name = f"{alias}-managed"

    print("\n=== System info ===")
    for key, value in get_host_system_info(name, settings).items():
        print(f"{key}: {value}")

    print("\n=== Connection logs ===")
    for log in get_connection_logs(name, settings=settings):
        print(f"{log.timestamp:%H:%M:%S} {log.connection_type} success={log.success}")

    return 0


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)
    sys.exit(basic_workflow(sys.argv[1], sys.argv[2] if len(sys.argv) > 2 else None))
