"""Pytest fixtures and configuration."""

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from aqoo.core.types import HostEntry, Settings


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmpdir = tempfile.mkdtemp()
    try:
        yield Path(tmpdir)
    finally:
        shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def home_dir(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the home directory at a temporary directory."""
    home = temp_dir / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    return home


@pytest.fixture
def settings(temp_dir: Path) -> Settings:
    """Create settings with all paths inside the temporary directory."""
    return Settings(
        keys_dir=temp_dir / "keys",
        registry_path=temp_dir / "hosts.json",
        ssh_config_path=temp_dir / "ssh_config",
        settle_delay=0,
    )


@pytest.fixture
def host_entry(temp_dir: Path) -> HostEntry:
    """Create a sample host entry with an existing identity file."""
    identity = temp_dir / "id_ed25519"
    identity.write_text("fake_key", encoding="utf-8")
    return HostEntry(
        alias="my-vps",
        hostname="192.168.1.100",
        user="root",
        port=2222,
        identity_file=str(identity),
    )
