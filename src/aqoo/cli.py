"""CLI for provisioning and accessing managed hosts.

This module provides command-line interface for:
- Listing hosts from the SSH client configuration
- Provisioning a key-authenticated admin user on a host
- Connecting to, inspecting and testing managed hosts
- Viewing connection logs and removing managed hosts
"""

import argparse
import getpass
import logging
import sys

from aqoo import functions
from aqoo.core.errors import AqooError
from aqoo.core.types import (
    HostEntry,
    ManagedHost,
    OutcomeStatus,
    ProvisioningOutcome,
    ProvisioningState,
    Settings,
    Succeeded,
)
from aqoo.ssh.config import has_ssh_config

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_UNVERIFIED = 2

STATE_MESSAGES = {
    ProvisioningState.CONNECTING: "Establishing SSH connection...",
    ProvisioningState.PROBING_USER: "Checking if user exists...",
    ProvisioningState.CREATING_USER: "Creating user...",
    ProvisioningState.GRANTING_PRIVILEGES: "Granting sudo privileges...",
    ProvisioningState.INSTALLING_KEY: "Setting up SSH authentication...",
    ProvisioningState.VERIFYING_INSTALL: "Verifying SSH setup...",
    ProvisioningState.DISCONNECTED: "Closing provisioning session...",
    ProvisioningState.CONFIRMING_LOGIN: "Testing new SSH connection...",
    ProvisioningState.DONE: "New user connection verified",
}

SSH_CONFIG_EXAMPLE = """\
Example SSH config entry:

Host my-vps
  HostName 192.168.1.100
  User root
  Port 22
  IdentityFile ~/.ssh/id_rsa"""


def format_ssh_host(host: HostEntry) -> str:
    """Format an SSH config host for listing."""
    return f"{host.alias:<20} {host.description}"


def format_managed_host(host: ManagedHost) -> str:
    """Format a managed host for listing."""
    last = "never"
    if host.last_accessed:
        last = host.last_accessed.strftime("%Y-%m-%d %H:%M")
    target = f"{host.managed_user}@{host.original_host}:{host.managed_port}"
    return (
        f"{host.name:<20} {target}"
        f"  [{host.status}, last accessed: {last}]"
    )


def confirm(message: str) -> bool:
    """Ask a yes/no question, defaulting to yes.

    Args:
        message: Question to display.

    Returns:
        True if confirmed.
    """
    try:
        answer = input(f"{message} [Y/n]: ").strip().lower()
    except (KeyboardInterrupt, EOFError):
        print()
        return False
    return answer in ("", "y", "yes")


def report_outcome(outcome: ProvisioningOutcome) -> int:
    """Print a provisioning outcome and map it to an exit code."""
    if isinstance(outcome, Succeeded):
        print()
        print("Setup completed!")
        print(f"  User: {outcome.effective_user}")
        print(f"  Private key: {outcome.key_pair.private_key_path}")
        print(f"  Public key:  {outcome.key_pair.public_key_path}")
        print()
        print('You can now use "aqoo connect" to connect to this host.')
        return EXIT_OK

    print(f"Setup failed: {outcome.reason}", file=sys.stderr)
    if outcome.status is OutcomeStatus.VERIFICATION_FAILED:
        print(
            "The user was created on the remote host, but logging in with the "
            "new key could not be confirmed.",
            file=sys.stderr,
        )
        return EXIT_UNVERIFIED
    return EXIT_FAILURE


def cmd_hosts(args: argparse.Namespace, settings: Settings) -> int:
    """Hosts command handler.

    Args:
        args: Parsed arguments.
        settings: Application settings.

    Returns:
        Exit code.
    """
    if not has_ssh_config(settings.ssh_config_path):
        print(f"SSH config file not found: {settings.ssh_config_path}", file=sys.stderr)
        print(file=sys.stderr)
        print(SSH_CONFIG_EXAMPLE, file=sys.stderr)
        return EXIT_FAILURE

    hosts = functions.list_ssh_hosts(settings)
    if not hosts:
        print(f"No SSH hosts found in {settings.ssh_config_path}")
        return EXIT_OK

    print(f"Found {len(hosts)} SSH host(s):")
    print()
    for host in hosts:
        print(f"  {format_ssh_host(host)}")
    return EXIT_OK


def cmd_setup(args: argparse.Namespace, settings: Settings) -> int:
    """Setup command handler.

    Args:
        args: Parsed arguments.
        settings: Application settings.

    Returns:
        Exit code.
    """
    username = args.user or settings.default_username
    if not args.yes and not confirm(
        f'This will create user "{username}" on {args.alias}. Continue?'
    ):
        print("Setup cancelled.")
        return EXIT_FAILURE

    password = None
    if args.password:
        password = getpass.getpass(f"Password for {args.alias}: ")

    def show_state(state: ProvisioningState) -> None:
        print(f"  {STATE_MESSAGES[state]}")

    try:
        outcome = functions.provision_host(
            args.alias,
            username=username,
            name=args.name,
            notes=args.notes,
            password=password,
            settings=settings,
            on_state=show_state,
        )
    except ValueError as e:
        print(f"Invalid setup request: {e}", file=sys.stderr)
        return EXIT_FAILURE

    return report_outcome(outcome)


def cmd_list(args: argparse.Namespace, settings: Settings) -> int:
    """List command handler."""
    hosts = functions.list_managed_hosts(settings)
    if not hosts:
        print("No managed hosts found.")
        print('Use "aqoo setup <alias>" to configure your first host.')
        return EXIT_OK

    print(f"Found {len(hosts)} managed host(s):")
    print()
    for host in hosts:
        print(f"  {format_managed_host(host)}")
        if host.notes:
            print(f"     Notes: {host.notes}")
    return EXIT_OK


def cmd_connect(args: argparse.Namespace, settings: Settings) -> int:
    """Connect command handler."""
    print(f"Connecting to {args.name}...")
    print('Press Ctrl+D or type "exit" to close the connection.')
    exit_code = functions.connect_host(args.name, settings)
    if exit_code != 0:
        print(f"SSH session exited with code {exit_code}", file=sys.stderr)
    else:
        print("SSH session closed.")
    return exit_code


def cmd_info(args: argparse.Namespace, settings: Settings) -> int:
    """Info command handler."""
    info = functions.get_host_system_info(args.name, settings)
    print(f"System information for {args.name}:")
    print()
    for key, value in info.items():
        print(f"  {key:<10} {value}")
    return EXIT_OK


def cmd_test(args: argparse.Namespace, settings: Settings) -> int:
    """Test command handler."""
    host = functions.check_host_connection(args.name, settings)
    print(f"Connection to {host.name} is working!")
    print(f"  Host: {host.original_host}")
    print(f"  User: {host.managed_user}")
    print(f"  Port: {host.managed_port}")
    return EXIT_OK


def cmd_logs(args: argparse.Namespace, settings: Settings) -> int:
    """Logs command handler."""
    logs = functions.get_connection_logs(args.name, limit=args.limit, settings=settings)
    if not logs:
        print("No connection logs found.")
        return EXIT_OK

    for log in logs:
        status = "ok" if log.success else "failed"
        line = (
            f"  {log.timestamp:%Y-%m-%d %H:%M:%S}  host={log.host_id:<4} "
            f"{log.connection_type:<6} {status}"
        )
        if log.error_message:
            line += f"  {log.error_message}"
        print(line)
    return EXIT_OK


def cmd_remove(args: argparse.Namespace, settings: Settings) -> int:
    """Remove command handler."""
    if not args.yes and not confirm(f"Remove managed host {args.name}?"):
        print("Remove cancelled.")
        return EXIT_FAILURE

    host = functions.remove_host(
        args.name, delete_keys=not args.keep_keys, settings=settings
    )
    print(f"Removed {host.name}. The user {host.managed_user} remains on the host.")
    return EXIT_OK


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser.

    Returns:
        Configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        prog="aqoo",
        description="Provision key-authenticated admin users on SSH hosts",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )
    parser.add_argument(
        "--config",
        "-c",
        help="Path to configuration file",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    hosts_parser = subparsers.add_parser("hosts", help="List hosts from SSH config")
    hosts_parser.set_defaults(func=cmd_hosts)

    setup_parser = subparsers.add_parser(
        "setup", help="Create a managed admin user on a host"
    )
    setup_parser.add_argument("alias", help="Host alias from SSH config")
    setup_parser.add_argument("--user", "-u", help="Name of the new remote user")
    setup_parser.add_argument(
        "--name", "-n", help="Name for the managed host (default: <alias>-managed)"
    )
    setup_parser.add_argument("--notes", help="Notes stored with the managed host")
    setup_parser.add_argument(
        "--password",
        "-p",
        action="store_true",
        help="Prompt for a password instead of using the identity file",
    )
    setup_parser.add_argument(
        "--yes", "-y", action="store_true", help="Do not ask for confirmation"
    )
    setup_parser.set_defaults(func=cmd_setup)

    list_parser = subparsers.add_parser(
        "list", aliases=["ls"], help="List managed hosts"
    )
    list_parser.set_defaults(func=cmd_list)

    connect_parser = subparsers.add_parser(
        "connect", aliases=["ssh"], help="Open an SSH shell on a managed host"
    )
    connect_parser.add_argument("name", help="Managed host name")
    connect_parser.set_defaults(func=cmd_connect)

    info_parser = subparsers.add_parser("info", help="Show remote system information")
    info_parser.add_argument("name", help="Managed host name")
    info_parser.set_defaults(func=cmd_info)

    test_parser = subparsers.add_parser("test", help="Test the managed connection")
    test_parser.add_argument("name", help="Managed host name")
    test_parser.set_defaults(func=cmd_test)

    logs_parser = subparsers.add_parser("logs", help="Show connection logs")
    logs_parser.add_argument("name", nargs="?", help="Managed host name")
    logs_parser.add_argument(
        "--limit", "-l", type=int, default=50, help="Maximum number of entries"
    )
    logs_parser.set_defaults(func=cmd_logs)

    remove_parser = subparsers.add_parser(
        "remove", aliases=["rm"], help="Remove a managed host"
    )
    remove_parser.add_argument("name", help="Managed host name")
    remove_parser.add_argument(
        "--keep-keys", action="store_true", help="Keep the local key files"
    )
    remove_parser.add_argument(
        "--yes", "-y", action="store_true", help="Do not ask for confirmation"
    )
    remove_parser.set_defaults(func=cmd_remove)

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.

    Returns:
        Exit code.
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        print()
        print("Quick start:")
        print("  aqoo hosts                 # List hosts from ~/.ssh/config")
        print("  aqoo setup my-vps          # Create an admin user on 'my-vps'")
        print("  aqoo list                  # List managed hosts")
        print("  aqoo connect my-vps-managed")
        return EXIT_OK

    try:
        settings = functions.load_settings(args.config)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_FAILURE

    try:
        return args.func(args, settings)
    except AqooError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        print()
        print("Operation cancelled.")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
