"""Tests for aqoo.core.paths module."""

import platform
from pathlib import Path

import pytest

from aqoo.core.paths import (
    expand_key_path,
    get_app_data_dir,
    get_default_config_path,
    get_default_ssh_config_path,
    get_keys_dir,
    get_registry_path,
)


class TestGetAppDataDir:
    """Tests for get_app_data_dir function."""

    def test_returns_path(self) -> None:
        """Test that function returns a Path object."""
        result = get_app_data_dir()
        assert isinstance(result, Path)

    def test_windows_uses_appdata(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test Windows uses APPDATA environment variable."""
        monkeypatch.setattr(platform, "system", lambda: "Windows")
        monkeypatch.setenv("APPDATA", "C:\\Users\\Test\\AppData\\Roaming")
        result = get_app_data_dir()
        assert result.name == "aqoo"
        assert "AppData" in str(result)

    def test_linux_uses_home(
        self, monkeypatch: pytest.MonkeyPatch, home_dir: Path
    ) -> None:
        """Test Linux uses home directory."""
        monkeypatch.setattr(platform, "system", lambda: "Linux")
        assert get_app_data_dir() == home_dir / ".aqoo"


class TestDefaultPaths:
    """Tests for derived default paths."""

    def test_files_under_app_data_dir(self, home_dir: Path) -> None:
        """Test that application files live in the data directory."""
        app_dir = get_app_data_dir()
        assert get_keys_dir() == app_dir / "keys"
        assert get_registry_path() == app_dir / "hosts.json"
        assert get_default_config_path() == app_dir / "config.json"

    def test_ssh_config_path(self, home_dir: Path) -> None:
        """Test the SSH client configuration location."""
        assert get_default_ssh_config_path() == home_dir / ".ssh" / "config"


class TestExpandKeyPath:
    """Tests for expand_key_path function."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("/keys/id_rsa", "/keys/id_rsa"),
            ("  /keys/id_rsa  ", "/keys/id_rsa"),
            ('"/keys/my key"', "/keys/my key"),
            ("'/keys/id_rsa'", "/keys/id_rsa"),
            ('"/keys/id_rsa', "/keys/id_rsa"),
        ],
    )
    def test_cleanup(self, raw: str, expected: str) -> None:
        """Test whitespace and quote stripping."""
        assert expand_key_path(raw) == expected

    def test_tilde(self) -> None:
        """Test that a leading tilde expands to the home directory."""
        assert expand_key_path("~/.ssh/id_rsa", home=Path("/home/u")) == str(
            Path("/home/u")
        ) + "/.ssh/id_rsa"

    def test_quoted_tilde(self) -> None:
        """Test that quotes are removed before expanding."""
        assert expand_key_path('"~/.ssh/id_rsa"', home=Path("/home/u")).endswith(
            "/.ssh/id_rsa"
        )
        assert not expand_key_path('"~/x"', home=Path("/home/u")).startswith("~")

    def test_tilde_only_at_start(self) -> None:
        """Test that inner tildes are left alone."""
        assert expand_key_path("/keys/~backup", home=Path("/home/u")) == "/keys/~backup"
