"""Exception hierarchy for aqoo."""


class AqooError(Exception):
    """Base class for all aqoo errors."""


class ConfigParseError(AqooError):
    """SSH configuration file is missing or unreadable."""


class KeyNotFoundError(AqooError):
    """Private key file referenced for authentication does not exist."""

    def __init__(self, key_path: str) -> None:
        super().__init__(f"Private key not found at: {key_path}")
        self.key_path = key_path


class SSHConnectionError(AqooError, ConnectionError):
    """Network or authentication failure while talking to a remote host."""


class CommandTimeoutError(AqooError):
    """Remote command did not finish within its timeout."""

    def __init__(self, command: str, timeout: float) -> None:
        super().__init__(f"Command timed out after {timeout}s: {command}")
        self.command = command
        self.timeout = timeout


class UserAlreadyExistsError(AqooError):
    """Managed user already exists on the remote host."""

    def __init__(self, username: str) -> None:
        super().__init__(f"User {username} already exists on the remote host")
        self.username = username


class StepFailedError(AqooError):
    """A required provisioning step failed."""

    def __init__(self, step: str, reason: str) -> None:
        super().__init__(f"{step}: {reason}")
        self.step = step
        self.reason = reason


class KeyGenerationError(AqooError):
    """Key pair could not be generated or written."""


class VerificationFailedError(AqooError):
    """Login with the newly installed credential could not be confirmed."""


class HostNotFoundError(AqooError):
    """Managed host is not present in the registry."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Managed host not found: {name}")
        self.name = name


class DuplicateHostError(AqooError):
    """A managed host with the same name is already registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Managed host already exists: {name}")
        self.name = name
