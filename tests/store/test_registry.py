"""Tests for aqoo.store.registry module."""

import json
from pathlib import Path

import pytest

from aqoo.core.errors import DuplicateHostError, HostNotFoundError
from aqoo.store.registry import HostRegistry


@pytest.fixture
def registry(temp_dir: Path) -> HostRegistry:
    """Create an empty registry."""
    return HostRegistry(temp_dir / "data" / "hosts.json")


def add_host(registry: HostRegistry, name: str = "web-managed"):
    return registry.save_host(
        name=name,
        original_host="10.0.0.1",
        original_user="root",
        original_port=2222,
        managed_user="deploy",
        managed_port=2222,
        private_key_path=f"/keys/{name}",
        public_key_path=f"/keys/{name}.pub",
        notes="primary",
    )


class TestHosts:
    """Tests for managed host records."""

    def test_empty(self, registry: HostRegistry) -> None:
        """Test that a new registry is empty and not yet written."""
        assert registry.get_all_hosts() == []
        assert not registry.path.exists()

    def test_save_host(self, registry: HostRegistry) -> None:
        """Test registering a host."""
        host = add_host(registry)

        assert host.id == 1
        assert host.status == "active"
        assert host.last_accessed is None
        assert registry.path.exists()
        assert registry.get_host(1) == host

    def test_persisted(self, registry: HostRegistry) -> None:
        """Test that data survives reopening."""
        add_host(registry)

        reopened = HostRegistry(registry.path)
        host = reopened.get_host_by_name("web-managed")

        assert host is not None
        assert host.managed_user == "deploy"
        assert host.original_port == 2222
        assert add_host(reopened, "db-managed").id == 2

    def test_duplicate_name(self, registry: HostRegistry) -> None:
        """Test that names are unique."""
        add_host(registry)

        with pytest.raises(DuplicateHostError):
            add_host(registry)

    def test_get_missing(self, registry: HostRegistry) -> None:
        """Test lookups of unknown hosts."""
        assert registry.get_host_by_name("nope") is None
        with pytest.raises(HostNotFoundError):
            registry.get_host(42)

    def test_all_hosts_newest_first(self, registry: HostRegistry) -> None:
        """Test ordering by setup date."""
        add_host(registry, "first")
        add_host(registry, "second")

        hosts = registry.get_all_hosts()
        assert {host.name for host in hosts} == {"first", "second"}
        assert hosts[0].setup_date >= hosts[1].setup_date

    def test_update_host(self, registry: HostRegistry) -> None:
        """Test updating allowed fields."""
        host = add_host(registry)

        updated = registry.update_host(host.id, status="inactive", notes="retired")

        assert updated.status == "inactive"
        assert registry.get_host(host.id).notes == "retired"

    def test_update_rejects_unknown_fields(self, registry: HostRegistry) -> None:
        """Test that only whitelisted fields can be updated."""
        host = add_host(registry)

        with pytest.raises(ValueError, match="id"):
            registry.update_host(host.id, id=7)
        with pytest.raises(ValueError, match="bogus"):
            registry.update_host(host.id, bogus="x")

    def test_update_last_accessed(self, registry: HostRegistry) -> None:
        """Test touching the last accessed timestamp."""
        host = add_host(registry)

        registry.update_last_accessed(host.id)

        assert registry.get_host(host.id).last_accessed is not None

    def test_delete_host_cascades(self, registry: HostRegistry) -> None:
        """Test that deleting a host removes its logs and keys."""
        host = add_host(registry)
        other = add_host(registry, "other")
        registry.log_connection(host.id, "ssh")
        registry.log_connection(other.id, "ssh")
        registry.save_ssh_key(host.id, "ed25519", "SHA256:abc")

        assert registry.delete_host(host.id)

        assert registry.get_host_by_name("web-managed") is None
        assert registry.get_ssh_keys(host.id) == []
        assert registry.get_connection_logs(host.id) == []
        assert len(registry.get_connection_logs(other.id)) == 1

    def test_delete_missing(self, registry: HostRegistry) -> None:
        """Test deleting an unknown host."""
        assert not registry.delete_host(99)


class TestConnectionLogs:
    """Tests for connection logs."""

    def test_log_connection(self, registry: HostRegistry) -> None:
        """Test recording attempts."""
        host = add_host(registry)

        registry.log_connection(host.id, "ssh")
        registry.log_connection(host.id, "info", False, "timed out")

        logs = registry.get_connection_logs(host.id)
        assert len(logs) == 2
        assert logs[0].connection_type == "info"
        assert not logs[0].success
        assert logs[0].error_message == "timed out"
        assert logs[1].success

    def test_limit(self, registry: HostRegistry) -> None:
        """Test limiting the number of entries."""
        for _ in range(5):
            registry.log_connection(0, "setup", False, "refused")

        assert len(registry.get_connection_logs(limit=3)) == 3
        assert len(registry.get_connection_logs()) == 5


class TestKeys:
    """Tests for key records."""

    def test_save_ssh_key(self, registry: HostRegistry) -> None:
        """Test recording key metadata."""
        host = add_host(registry)

        record = registry.save_ssh_key(host.id, "ed25519", "SHA256:abc")

        assert registry.get_ssh_keys(host.id) == [record]


class TestCorruptFile:
    """Tests for unreadable registry files."""

    def test_invalid_json(self, temp_dir: Path) -> None:
        """Test that invalid JSON is treated as empty."""
        path = temp_dir / "hosts.json"
        path.write_text("{not json", encoding="utf-8")

        registry = HostRegistry(path)
        assert registry.get_all_hosts() == []

        add_host(registry)
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["hosts"][0]["name"] == "web-managed"
