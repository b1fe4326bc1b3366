"""Remote commands issued while provisioning a managed user."""

import shlex

from aqoo.core.types import RemoteCommand

NOT_FOUND_MARKER = "not_found"

STEP_CHECK_USER = "check-user"
STEP_GENERATE_KEY = "generate-key"
STEP_CREATE_USER = "create-user"
STEP_GRANT_PRIVILEGES = "grant-privileges"
STEP_INSTALL_KEY = "install-key"
STEP_VERIFY_INSTALL = "verify-install"
STEP_CONFIRM_LOGIN = "confirm-login"

WHOAMI_COMMAND = "whoami"


def check_user_command(username: str) -> RemoteCommand:
    """Existence check; prints the not-found marker when the user is absent."""
    return RemoteCommand(
        STEP_CHECK_USER, f'id {username} 2>/dev/null || echo "{NOT_FOUND_MARKER}"'
    )


def user_exists(check_stdout: str) -> bool:
    """Interpret the output of the user check command."""
    return NOT_FOUND_MARKER not in check_stdout


def create_user_command(username: str) -> RemoteCommand:
    return RemoteCommand(STEP_CREATE_USER, f"sudo useradd -m -s /bin/bash {username}")


def grant_privilege_commands(username: str) -> list[RemoteCommand]:
    """Sudo grants for the managed user.

    Group names differ between distributions (``sudo`` on Debian/Ubuntu,
    ``wheel`` on RHEL/CentOS), so every command may fail independently.
    """
    sudoers_file = f"/etc/sudoers.d/{username}"
    return [
        RemoteCommand(
            STEP_GRANT_PRIVILEGES, f"sudo usermod -aG sudo {username}", True
        ),
        RemoteCommand(
            STEP_GRANT_PRIVILEGES, f"sudo usermod -aG wheel {username}", True
        ),
        RemoteCommand(
            STEP_GRANT_PRIVILEGES,
            f'echo "{username} ALL=(ALL) NOPASSWD:ALL" | sudo tee {sudoers_file}',
            True,
        ),
        RemoteCommand(STEP_GRANT_PRIVILEGES, f"sudo chmod 0440 {sudoers_file}", True),
    ]


def install_key_commands(username: str, public_key: str) -> list[RemoteCommand]:
    """Commands writing ``public_key`` as the only authorized key."""
    ssh_dir = f"/home/{username}/.ssh"
    authorized_keys = f"{ssh_dir}/authorized_keys"
    return [
        RemoteCommand(STEP_INSTALL_KEY, f"sudo mkdir -p {ssh_dir}"),
        RemoteCommand(
            STEP_INSTALL_KEY,
            f"echo {shlex.quote(public_key)} | sudo tee {authorized_keys}",
        ),
        RemoteCommand(
            STEP_INSTALL_KEY, f"sudo chown -R {username}:{username} {ssh_dir}"
        ),
        RemoteCommand(STEP_INSTALL_KEY, f"sudo chmod 700 {ssh_dir}"),
        RemoteCommand(STEP_INSTALL_KEY, f"sudo chmod 600 {authorized_keys}"),
    ]


def verify_install_command(username: str) -> RemoteCommand:
    return RemoteCommand(
        STEP_VERIFY_INSTALL, f"sudo ls -la /home/{username}/.ssh/authorized_keys"
    )


def confirm_login_command() -> RemoteCommand:
    return RemoteCommand(STEP_CONFIRM_LOGIN, WHOAMI_COMMAND)
