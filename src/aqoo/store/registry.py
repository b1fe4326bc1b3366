"""Local registry of managed hosts."""

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from aqoo.core.errors import DuplicateHostError, HostNotFoundError
from aqoo.core.types import ConnectionLog, KeyRecord, ManagedHost

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset(
    {
        "original_host",
        "original_user",
        "original_port",
        "managed_user",
        "managed_port",
        "private_key_path",
        "public_key_path",
        "status",
        "notes",
    }
)


class HostRegistry:
    """Stores managed hosts, connection logs and key records in a JSON file.

    The file holds three lists (``hosts``, ``connection_logs``, ``ssh_keys``)
    and the next id per list. Every mutation is written back immediately.
    """

    def __init__(self, path: Path) -> None:
        """Initialize registry.

        Args:
            path: Path to the registry JSON file.
        """
        self._path = path
        self._lock = threading.Lock()
        self._data: dict[str, Any] = {}
        self._load()

    @property
    def path(self) -> Path:
        """Get the registry file path."""
        return self._path

    def _load(self) -> None:
        """Load registry from file."""
        if self._path.exists():
            try:
                self._data = json.loads(self._path.read_text(encoding="utf-8"))
            except (json.JSONDecodeError, OSError) as e:
                logger.warning(f"Ignoring unreadable registry {self._path}: {e}")
                self._data = {}
        else:
            self._data = {}

        for key in ("hosts", "connection_logs", "ssh_keys"):
            self._data.setdefault(key, [])
        self._data.setdefault("next_ids", {})

    def _save(self) -> None:
        """Save registry to file."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps(self._data, indent=2, default=str),
            encoding="utf-8",
        )

    def _next_id(self, table: str) -> int:
        next_ids = self._data["next_ids"]
        value = next_ids.get(table, 1)
        next_ids[table] = value + 1
        return value

    def _find_host(self, host_id: int) -> dict[str, Any]:
        for entry in self._data["hosts"]:
            if entry["id"] == host_id:
                return entry
        raise HostNotFoundError(str(host_id))

    # Hosts

    def save_host(
        self,
        name: str,
        original_host: str,
        managed_user: str,
        private_key_path: str,
        public_key_path: str,
        original_user: str | None = None,
        original_port: int = 22,
        managed_port: int = 22,
        notes: str | None = None,
    ) -> ManagedHost:
        """Register a newly provisioned host.

        Raises:
            DuplicateHostError: If a host with the same name is registered.
        """
        with self._lock:
            if any(entry["name"] == name for entry in self._data["hosts"]):
                raise DuplicateHostError(name)

            host = ManagedHost(
                id=self._next_id("hosts"),
                name=name,
                original_host=original_host,
                original_user=original_user,
                original_port=original_port,
                managed_user=managed_user,
                managed_port=managed_port,
                private_key_path=private_key_path,
                public_key_path=public_key_path,
                notes=notes,
            )
            self._data["hosts"].append(host.model_dump(mode="json"))
            self._save()

        logger.info(f"Registered managed host {name}")
        return host

    def get_all_hosts(self) -> list[ManagedHost]:
        """Get all managed hosts, most recently set up first."""
        hosts = [ManagedHost(**entry) for entry in self._data["hosts"]]
        return sorted(hosts, key=lambda h: h.setup_date, reverse=True)

    def get_host(self, host_id: int) -> ManagedHost:
        """Get a managed host by id."""
        return ManagedHost(**self._find_host(host_id))

    def get_host_by_name(self, name: str) -> ManagedHost | None:
        """Get a managed host by name.

        Returns:
            ManagedHost or None if not registered.
        """
        for entry in self._data["hosts"]:
            if entry["name"] == name:
                return ManagedHost(**entry)
        return None

    def update_host(self, host_id: int, **updates: Any) -> ManagedHost:
        """Update fields of a managed host.

        Only fields in ``UPDATABLE_FIELDS`` may be changed.

        Raises:
            ValueError: If an unknown or read-only field is given.
            HostNotFoundError: If the host does not exist.
        """
        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        with self._lock:
            entry = self._find_host(host_id)
            merged = ManagedHost(**{**entry, **updates})
            entry.update(merged.model_dump(mode="json"))
            self._save()
        return merged

    def delete_host(self, host_id: int) -> bool:
        """Delete a managed host with its logs and key records.

        Returns:
            True if deleted, False if not found.
        """
        with self._lock:
            hosts = self._data["hosts"]
            remaining = [entry for entry in hosts if entry["id"] != host_id]
            if len(remaining) == len(hosts):
                return False
            self._data["hosts"] = remaining
            for table in ("connection_logs", "ssh_keys"):
                self._data[table] = [
                    entry for entry in self._data[table] if entry["host_id"] != host_id
                ]
            self._save()
        logger.info(f"Deleted managed host {host_id}")
        return True

    def update_last_accessed(self, host_id: int) -> None:
        """Set the last accessed timestamp of a host to now."""
        with self._lock:
            entry = self._find_host(host_id)
            entry["last_accessed"] = datetime.now(timezone.utc).isoformat()
            self._save()

    # Connection logs

    def log_connection(
        self,
        host_id: int,
        connection_type: str,
        success: bool = True,
        error_message: str | None = None,
    ) -> ConnectionLog:
        """Record a connection attempt.

        ``host_id`` 0 records attempts that have no registered host, such as
        failed setups.
        """
        with self._lock:
            log = ConnectionLog(
                id=self._next_id("connection_logs"),
                host_id=host_id,
                connection_type=connection_type,
                success=success,
                error_message=error_message,
            )
            self._data["connection_logs"].append(log.model_dump(mode="json"))
            self._save()
        return log

    def get_connection_logs(
        self, host_id: int | None = None, limit: int = 50
    ) -> list[ConnectionLog]:
        """Get connection logs, newest first.

        Args:
            host_id: Only return logs of this host if given.
            limit: Maximum number of entries.
        """
        logs = [
            ConnectionLog(**entry)
            for entry in self._data["connection_logs"]
            if host_id is None or entry["host_id"] == host_id
        ]
        logs.sort(key=lambda log: (log.timestamp, log.id), reverse=True)
        return logs[:limit]

    # Keys

    def save_ssh_key(
        self, host_id: int, key_type: str, fingerprint: str | None = None
    ) -> KeyRecord:
        """Record metadata of a generated key."""
        with self._lock:
            record = KeyRecord(
                id=self._next_id("ssh_keys"),
                host_id=host_id,
                key_type=key_type,
                fingerprint=fingerprint,
            )
            self._data["ssh_keys"].append(record.model_dump(mode="json"))
            self._save()
        return record

    def get_ssh_keys(self, host_id: int) -> list[KeyRecord]:
        """Get key records of a host."""
        return [
            KeyRecord(**entry)
            for entry in self._data["ssh_keys"]
            if entry["host_id"] == host_id
        ]
