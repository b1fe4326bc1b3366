"""Provisioning workflow for a key-authenticated administrative user.

The workflow is linear::

    connecting -> probing_user -> creating_user -> granting_privileges
    -> installing_key -> verifying_install -> disconnected
    -> confirming_login -> done

Every run produces exactly one :class:`ProvisioningOutcome`. Remote changes
are never rolled back: a failure after ``creating_user`` leaves the user in
place on the host.
"""

import functools
import logging
import threading
import time
from collections.abc import Callable, Iterable
from typing import Protocol

from aqoo.core.errors import (
    AqooError,
    DuplicateHostError,
    KeyGenerationError,
    StepFailedError,
    UserAlreadyExistsError,
    VerificationFailedError,
)
from aqoo.core.types import (
    AlreadyExists,
    ConnectionFailed,
    KeyPair,
    ProvisioningOutcome,
    ProvisioningRequest,
    ProvisioningState,
    RemoteCommand,
    RemoteCommandResult,
    Settings,
    SSHEndpoint,
    StepFailed,
    Succeeded,
    VerificationFailed,
)
from aqoo.provisioning import commands
from aqoo.ssh.keys import SSHKeyManager, fingerprint
from aqoo.ssh.session import RemoteSession
from aqoo.store.registry import HostRegistry

logger = logging.getLogger(__name__)

KEY_TYPE = "ed25519"


class CommandSession(Protocol):
    """Session interface used by the provisioner."""

    def exec(
        self, command: str, timeout: float | None = None
    ) -> RemoteCommandResult: ...

    def close(self) -> None: ...


SessionFactory = Callable[[SSHEndpoint], CommandSession]

_alias_locks: dict[str, threading.Lock] = {}
_name_locks: dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


def _lock_for(locks: dict[str, threading.Lock], key: str) -> threading.Lock:
    with _locks_guard:
        return locks.setdefault(key, threading.Lock())


class Provisioner:
    """Creates a managed user on a remote host and installs a fresh key."""

    def __init__(
        self,
        key_manager: SSHKeyManager,
        session_factory: SessionFactory | None = None,
        registry: HostRegistry | None = None,
        settings: Settings | None = None,
        on_state: Callable[[ProvisioningState], None] | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize provisioner.

        Args:
            key_manager: Key manager used to generate the new key pair.
            session_factory: Opens a session for an endpoint. Uses
                RemoteSession.open if None.
            registry: Registry receiving the result and connection logs.
            settings: Application settings.
            on_state: Called on every state transition.
            sleep: Sleep function used for the settling delay.
            clock: Time source used for key identity names.
        """
        self._settings = settings or Settings()
        self._key_manager = key_manager
        self._session_factory = session_factory or functools.partial(
            RemoteSession.open,
            command_timeout=self._settings.command_timeout,
            known_hosts_policy=self._settings.known_hosts_policy,
        )
        self._registry = registry
        self._on_state = on_state
        self._sleep = sleep
        self._clock = clock
        self._local = threading.local()

    @property
    def state(self) -> ProvisioningState | None:
        """Get the workflow state of the run on the calling thread."""
        return getattr(self._local, "state", None)

    def run(
        self, request: ProvisioningRequest, password: str | None = None
    ) -> ProvisioningOutcome:
        """Run the provisioning workflow.

        Runs for the same target alias or the same managed name are
        serialized. One instance may serve concurrent runs from different
        threads.

        Args:
            request: Provisioning request.
            password: Password for the original login, used instead of the
                host's identity file when given.

        Returns:
            The outcome of the run.

        Raises:
            DuplicateHostError: If the registry already holds a host named
                ``request.name``. Checked before connecting.
        """
        alias_lock = _lock_for(_alias_locks, request.target.alias)
        name_lock = _lock_for(_name_locks, request.name)
        with alias_lock, name_lock:
            if self._registry and self._registry.get_host_by_name(request.name):
                raise DuplicateHostError(request.name)

            self._local.state = None
            outcome = self._run(request, password)

            if outcome.ok:
                logger.info(
                    f"Provisioned {request.username} on {request.target.alias}"
                )
            else:
                logger.warning(
                    f"Provisioning {request.target.alias} ended: {outcome.reason}"
                )

            if self._registry:
                self._record(self._registry, request, outcome)
        return outcome

    def _transition(self, state: ProvisioningState) -> None:
        logger.debug(f"Provisioning state: {state.value}")
        self._local.state = state
        if self._on_state:
            self._on_state(state)

    def _run(
        self, request: ProvisioningRequest, password: str | None
    ) -> ProvisioningOutcome:
        target = request.target

        self._transition(ProvisioningState.CONNECTING)
        endpoint = SSHEndpoint.from_host_entry(
            target, password=password, timeout=self._settings.connect_timeout
        )
        try:
            session = self._session_factory(endpoint)
        except AqooError as e:
            return ConnectionFailed(message=str(e))

        try:
            key_pair = self._provision(session, request)
        except UserAlreadyExistsError:
            return AlreadyExists(username=request.username)
        except StepFailedError as e:
            return StepFailed(step=e.step, message=e.reason)
        finally:
            session.close()

        self._transition(ProvisioningState.DISCONNECTED)

        self._transition(ProvisioningState.CONFIRMING_LOGIN)
        try:
            self._confirm_login(request, key_pair)
        except VerificationFailedError as e:
            return VerificationFailed(message=str(e), key_pair=key_pair)

        self._transition(ProvisioningState.DONE)
        return Succeeded(key_pair=key_pair, effective_user=request.username)

    def _provision(
        self, session: CommandSession, request: ProvisioningRequest
    ) -> KeyPair:
        username = request.username

        self._transition(ProvisioningState.PROBING_USER)
        check = self._execute(session, commands.check_user_command(username))
        if commands.user_exists(check.stdout):
            raise UserAlreadyExistsError(username)

        key_pair = self._generate_key(request)

        self._transition(ProvisioningState.CREATING_USER)
        self._execute(session, commands.create_user_command(username))

        self._transition(ProvisioningState.GRANTING_PRIVILEGES)
        self._execute_all(session, commands.grant_privilege_commands(username))

        self._transition(ProvisioningState.INSTALLING_KEY)
        self._execute_all(
            session, commands.install_key_commands(username, key_pair.public_key)
        )

        self._transition(ProvisioningState.VERIFYING_INSTALL)
        self._execute(session, commands.verify_install_command(username))

        return key_pair

    def _generate_key(self, request: ProvisioningRequest) -> KeyPair:
        identity = f"{request.name}-{int(self._clock() * 1000)}"
        try:
            return self._key_manager.generate_key_pair(identity)
        except KeyGenerationError as e:
            raise StepFailedError(commands.STEP_GENERATE_KEY, str(e)) from e

    def _execute_all(
        self, session: CommandSession, remote_commands: Iterable[RemoteCommand]
    ) -> None:
        for remote_command in remote_commands:
            self._execute(session, remote_command)

    def _execute(
        self, session: CommandSession, remote_command: RemoteCommand
    ) -> RemoteCommandResult:
        """Run one command and apply its failure policy.

        Raises:
            StepFailedError: If a required command fails.
        """
        step, command, ignore_failure = remote_command
        try:
            result = session.exec(command)
        except AqooError as e:
            if ignore_failure:
                logger.warning(f"Ignoring failed {step} command {command!r}: {e}")
                return RemoteCommandResult(-1, "", str(e))
            raise StepFailedError(step, str(e)) from e

        if not result.ok:
            detail = result.stderr.strip() or result.stdout.strip() or "no output"
            if ignore_failure:
                logger.warning(
                    f"Ignoring failed {step} command {command!r} "
                    f"(exit {result.exit_code}): {detail}"
                )
            else:
                raise StepFailedError(
                    step, f"{command!r} exited with {result.exit_code}: {detail}"
                )
        return result

    def _confirm_login(self, request: ProvisioningRequest, key_pair: KeyPair) -> None:
        """Log in as the new user with the new key and check ``whoami``.

        Raises:
            VerificationFailedError: On connection failure or user mismatch.
        """
        # sshd may need a moment to pick up the new account
        self._sleep(self._settings.settle_delay)

        endpoint = SSHEndpoint(
            host=request.target.hostname,
            port=request.target.port,
            username=request.username,
            private_key_path=str(key_pair.private_key_path),
            timeout=self._settings.connect_timeout,
        )
        try:
            session = self._session_factory(endpoint)
            try:
                result = session.exec(commands.confirm_login_command().command)
            finally:
                session.close()
        except AqooError as e:
            raise VerificationFailedError(f"Connection test failed: {e}") from e

        actual = result.stdout.strip()
        if actual != request.username:
            raise VerificationFailedError(
                f"Expected to log in as {request.username}, remote reported {actual!r}"
            )

    def _record(
        self,
        registry: HostRegistry,
        request: ProvisioningRequest,
        outcome: ProvisioningOutcome,
    ) -> None:
        """Store the outcome in the registry.

        Registry failures are logged and do not replace the outcome.
        """
        try:
            if isinstance(outcome, Succeeded):
                self._register_host(registry, request, outcome)
            else:
                registry.log_connection(0, "setup", False, outcome.reason)
        except (AqooError, OSError) as e:
            logger.error(f"Could not record provisioning of {request.name}: {e}")

    def _register_host(
        self,
        registry: HostRegistry,
        request: ProvisioningRequest,
        outcome: Succeeded,
    ) -> None:
        key_pair = outcome.key_pair
        host = registry.save_host(
            name=request.name,
            original_host=request.target.hostname,
            original_user=request.target.user,
            original_port=request.target.port,
            managed_user=outcome.effective_user,
            managed_port=request.target.port,
            private_key_path=str(key_pair.private_key_path),
            public_key_path=str(key_pair.public_key_path),
            notes=request.notes,
        )
        registry.save_ssh_key(host.id, KEY_TYPE, fingerprint(key_pair.public_key))
        registry.log_connection(host.id, "setup", True)
