"""Type definitions for aqoo."""

import getpass
import re
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import NamedTuple

from pydantic import BaseModel, Field, field_validator, model_validator

from aqoo.core.paths import (
    get_default_ssh_config_path,
    get_keys_dir,
    get_registry_path,
)

USERNAME_PATTERN = re.compile(r"^[a-z_][a-z0-9_-]*$")
NAME_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")


class HostEntry(BaseModel):
    """One host block parsed from SSH client configuration."""

    alias: str
    hostname: str
    user: str | None = None
    port: int = 22
    identity_file: str | None = None
    options: dict[str, str] = Field(default_factory=dict)

    model_config = {"extra": "forbid", "frozen": True}

    @property
    def description(self) -> str:
        """Get ``user@hostname:port`` display string."""
        return f"{self.user or 'unknown'}@{self.hostname}:{self.port}"


class ProvisioningRequest(BaseModel):
    """Input of a single provisioning workflow run."""

    target: HostEntry
    username: str
    name: str = ""
    notes: str | None = None

    model_config = {"extra": "forbid", "frozen": True}

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: str) -> str:
        """Check the managed user name against the allowed pattern."""
        if not value:
            raise ValueError("Username cannot be empty")
        if not USERNAME_PATTERN.match(value):
            raise ValueError(
                "Invalid username format. Use lowercase letters, numbers, "
                "underscore, and hyphen."
            )
        return value

    @model_validator(mode="before")
    @classmethod
    def default_name(cls, data: object) -> object:
        """Default the managed alias to ``<alias>-managed``."""
        if isinstance(data, dict) and not data.get("name"):
            target = data.get("target")
            alias = target.alias if isinstance(target, HostEntry) else None
            if alias is None and isinstance(target, dict):
                alias = target.get("alias")
            if alias:
                data = {**data, "name": f"{alias}-managed"}
        return data

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        """Check the managed alias.

        The alias names the local key files and ends up in the key comment,
        so it is limited to characters that are safe in both.
        """
        if not value.strip():
            raise ValueError("Name cannot be empty")
        if not NAME_PATTERN.match(value) or value in (".", ".."):
            raise ValueError(
                "Invalid name format. Use letters, numbers, dot, underscore, "
                "and hyphen."
            )
        return value


class KeyPair(NamedTuple):
    """Generated SSH key pair."""

    name: str
    private_key_path: Path
    public_key_path: Path
    public_key: str


class RemoteCommandResult(NamedTuple):
    """Result of one remote command execution."""

    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        """Whether the command exited with status 0."""
        return self.exit_code == 0


class RemoteCommand(NamedTuple):
    """A remote shell command together with its failure policy."""

    step: str
    command: str
    ignore_failure: bool = False


class SSHEndpoint(BaseModel):
    """Connection parameters for a remote session."""

    host: str
    port: int = 22
    username: str
    password: str | None = Field(default=None, repr=False)
    private_key_path: str | None = None
    timeout: int = 30

    model_config = {"extra": "forbid", "frozen": True}

    @classmethod
    def from_host_entry(
        cls,
        entry: HostEntry,
        password: str | None = None,
        timeout: int = 30,
    ) -> "SSHEndpoint":
        """Create endpoint from a parsed host entry.

        Falls back to the local user name when the entry has no ``User``,
        as the ssh client does.

        Args:
            entry: Host entry selected from SSH configuration.
            password: Optional password, takes precedence over the identity file.
            timeout: Connection timeout in seconds.

        Returns:
            SSHEndpoint instance.
        """
        return cls(
            host=entry.hostname,
            port=entry.port,
            username=entry.user or getpass.getuser(),
            password=password,
            private_key_path=entry.identity_file,
            timeout=timeout,
        )


class ProvisioningState(Enum):
    """Provisioning workflow state."""

    CONNECTING = "connecting"
    PROBING_USER = "probing_user"
    CREATING_USER = "creating_user"
    GRANTING_PRIVILEGES = "granting_privileges"
    INSTALLING_KEY = "installing_key"
    VERIFYING_INSTALL = "verifying_install"
    DISCONNECTED = "disconnected"
    CONFIRMING_LOGIN = "confirming_login"
    DONE = "done"


class OutcomeStatus(Enum):
    """Terminal result kind of a provisioning run."""

    SUCCEEDED = "succeeded"
    ALREADY_EXISTS = "already_exists"
    CONNECTION_FAILED = "connection_failed"
    STEP_FAILED = "step_failed"
    VERIFICATION_FAILED = "verification_failed"


class ProvisioningOutcome(BaseModel):
    """Base class for provisioning outcomes."""

    status: OutcomeStatus

    model_config = {"frozen": True}

    @property
    def ok(self) -> bool:
        """Whether provisioning fully succeeded."""
        return self.status is OutcomeStatus.SUCCEEDED

    @property
    def reason(self) -> str | None:
        """Human-readable failure reason, None on success."""
        return None


class Succeeded(ProvisioningOutcome):
    """Managed user created and key login confirmed."""

    status: OutcomeStatus = OutcomeStatus.SUCCEEDED
    key_pair: KeyPair
    effective_user: str


class AlreadyExists(ProvisioningOutcome):
    """Requested user was already present; nothing was changed."""

    status: OutcomeStatus = OutcomeStatus.ALREADY_EXISTS
    username: str

    @property
    def reason(self) -> str:
        return f"User {self.username} already exists on the remote host"


class ConnectionFailed(ProvisioningOutcome):
    """Could not open the provisioning session."""

    status: OutcomeStatus = OutcomeStatus.CONNECTION_FAILED
    message: str

    @property
    def reason(self) -> str:
        return f"Connection failed: {self.message}"


class StepFailed(ProvisioningOutcome):
    """A required remote step failed."""

    status: OutcomeStatus = OutcomeStatus.STEP_FAILED
    step: str
    message: str

    @property
    def reason(self) -> str:
        return f"Step {self.step} failed: {self.message}"


class VerificationFailed(ProvisioningOutcome):
    """Remote side was changed but the new login could not be confirmed."""

    status: OutcomeStatus = OutcomeStatus.VERIFICATION_FAILED
    message: str
    key_pair: KeyPair | None = None

    @property
    def reason(self) -> str:
        return f"Verification failed: {self.message}"


class KnownHostsPolicy(Enum):
    """How unknown remote host keys are handled."""

    STRICT = "strict"
    AUTO_ADD = "auto_add"
    WARNING = "warning"


class Settings(BaseModel):
    """Application settings."""

    keys_dir: Path = Field(default_factory=get_keys_dir)
    registry_path: Path = Field(default_factory=get_registry_path)
    ssh_config_path: Path = Field(default_factory=get_default_ssh_config_path)
    connect_timeout: int = 30
    command_timeout: float = 120.0
    settle_delay: float = 2.0
    default_username: str = "aqoo-admin"
    known_hosts_policy: KnownHostsPolicy = KnownHostsPolicy.AUTO_ADD

    model_config = {"extra": "forbid"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ManagedHost(BaseModel):
    """Registry record of a provisioned host."""

    id: int
    name: str
    original_host: str
    original_user: str | None = None
    original_port: int = 22
    managed_user: str
    managed_port: int = 22
    private_key_path: str
    public_key_path: str
    setup_date: datetime = Field(default_factory=_utcnow)
    last_accessed: datetime | None = None
    status: str = "active"
    notes: str | None = None

    model_config = {"extra": "forbid"}

    def endpoint(self, timeout: int = 30) -> SSHEndpoint:
        """Get the endpoint for logging in as the managed user."""
        return SSHEndpoint(
            host=self.original_host,
            port=self.managed_port,
            username=self.managed_user,
            private_key_path=self.private_key_path,
            timeout=timeout,
        )


class ConnectionLog(BaseModel):
    """One recorded connection attempt."""

    id: int
    host_id: int
    connection_type: str
    timestamp: datetime = Field(default_factory=_utcnow)
    success: bool = True
    error_message: str | None = None

    model_config = {"extra": "forbid"}


class KeyRecord(BaseModel):
    """Metadata of a key generated for a managed host."""

    id: int
    host_id: int
    key_type: str
    fingerprint: str | None = None
    created_date: datetime = Field(default_factory=_utcnow)

    model_config = {"extra": "forbid"}
