"""Tests for aqoo.ssh.client module."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from aqoo.core.errors import SSHConnectionError
from aqoo.core.types import SSHEndpoint
from aqoo.ssh.client import build_ssh_command, open_passthrough


class TestBuildSSHCommand:
    """Tests for build_ssh_command function."""

    def test_basic_command(self) -> None:
        """Test building basic SSH command."""
        endpoint = SSHEndpoint(host="localhost", port=2222, username="admin")

        cmd = build_ssh_command(endpoint)

        assert cmd[0] == "ssh"
        assert "-p" in cmd
        assert cmd[cmd.index("-p") + 1] == "2222"
        assert "StrictHostKeyChecking=no" in cmd
        assert cmd[-1] == "admin@localhost"
        assert "-i" not in cmd

    def test_with_key(self) -> None:
        """Test building command with private key."""
        endpoint = SSHEndpoint(
            host="h", username="admin", private_key_path='"/keys/web-1"'
        )

        cmd = build_ssh_command(endpoint)

        assert cmd[cmd.index("-i") + 1] == "/keys/web-1"

    def test_with_command(self) -> None:
        """Test building command with remote command."""
        endpoint = SSHEndpoint(host="h", username="admin")

        cmd = build_ssh_command(endpoint, command="uptime")

        assert cmd[-1] == "uptime"
        assert cmd[-2] == "admin@h"

    def test_with_extra_options(self) -> None:
        """Test building command with extra options."""
        endpoint = SSHEndpoint(host="h", username="admin")

        cmd = build_ssh_command(endpoint, extra_options=["-v"])

        assert cmd.index("-v") < cmd.index("admin@h")


class TestOpenPassthrough:
    """Tests for open_passthrough function."""

    @patch("aqoo.ssh.client.subprocess.run")
    def test_exit_code_returned(self, mock_run: MagicMock) -> None:
        """Test that the ssh exit code is returned."""
        mock_run.return_value = subprocess.CompletedProcess(args=[], returncode=0)

        code = open_passthrough(SSHEndpoint(host="h", username="admin"))

        assert code == 0
        assert mock_run.call_args[0][0][-1] == "admin@h"

    @patch("aqoo.ssh.client.subprocess.run")
    def test_abnormal_exit(self, mock_run: MagicMock) -> None:
        """Test non-zero exit codes."""
        mock_run.return_value = subprocess.CompletedProcess(args=[], returncode=255)

        assert open_passthrough(SSHEndpoint(host="h", username="admin")) == 255

    @patch("aqoo.ssh.client.subprocess.run")
    def test_missing_client(self, mock_run: MagicMock) -> None:
        """Test that a missing ssh binary raises SSHConnectionError."""
        mock_run.side_effect = FileNotFoundError("ssh")

        with pytest.raises(SSHConnectionError, match="Cannot start ssh client"):
            open_passthrough(SSHEndpoint(host="h", username="admin"))
