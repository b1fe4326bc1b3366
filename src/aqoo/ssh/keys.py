"""SSH key generation and management."""

import base64
import hashlib
import logging
import os
import stat
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from aqoo.core.errors import KeyGenerationError
from aqoo.core.types import KeyPair

logger = logging.getLogger(__name__)

KEY_COMMENT_PREFIX = "aqoo-managed"


def fingerprint(public_key: str) -> str:
    """Compute the OpenSSH SHA256 fingerprint of a public key line.

    Args:
        public_key: Public key in ``<type> <base64> [comment]`` form.

    Returns:
        Fingerprint such as ``SHA256:abc...``.
    """
    parts = public_key.split()
    if len(parts) < 2:
        raise ValueError("Malformed public key")
    blob = base64.b64decode(parts[1])
    digest = hashlib.sha256(blob).digest()
    return "SHA256:" + base64.b64encode(digest).decode("ascii").rstrip("=")


class SSHKeyManager:
    """Manages generation and removal of per-host key pairs."""

    def __init__(self, keys_dir: Path) -> None:
        """Initialize SSH key manager.

        Args:
            keys_dir: Directory to store SSH keys.
        """
        self._keys_dir = keys_dir

    @property
    def keys_dir(self) -> Path:
        """Get keys directory."""
        return self._keys_dir

    def generate_key_pair(self, name: str) -> KeyPair:
        """Generate a new Ed25519 SSH key pair.

        Args:
            name: Identity name, used as the base name for the key files.

        Returns:
            KeyPair with paths and public key content.

        Raises:
            KeyGenerationError: If the name is not a plain file name, or the
                key cannot be generated or written.
        """
        if not name or Path(name).name != name or name in (".", ".."):
            raise KeyGenerationError(f"Invalid key name: {name!r}")

        private_key_path = self._keys_dir / name
        public_key_path = self._keys_dir / f"{name}.pub"

        try:
            self._keys_dir.mkdir(parents=True, exist_ok=True)

            private_key = ed25519.Ed25519PrivateKey.generate()
            private_key_bytes = private_key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.OpenSSH,
                encryption_algorithm=serialization.NoEncryption(),
            )
            public_key_bytes = private_key.public_key().public_bytes(
                encoding=serialization.Encoding.OpenSSH,
                format=serialization.PublicFormat.OpenSSH,
            )

            private_key_path.write_bytes(private_key_bytes)
            # Owner read/write only
            os.chmod(private_key_path, stat.S_IRUSR | stat.S_IWUSR)

            public_line = (
                f"{public_key_bytes.decode('utf-8')} {KEY_COMMENT_PREFIX}-{name}\n"
            )
            public_key_path.write_text(public_line, encoding="utf-8")
            os.chmod(
                public_key_path,
                stat.S_IRUSR | stat.S_IWUSR | stat.S_IRGRP | stat.S_IROTH,
            )

            public_key = public_key_path.read_text(encoding="utf-8").strip()
        except (OSError, ValueError) as e:
            self._remove_files(private_key_path, public_key_path)
            raise KeyGenerationError(f"Failed to generate SSH key: {e}") from e

        logger.info(f"Generated key pair {name} in {self._keys_dir}")
        return KeyPair(
            name=name,
            private_key_path=private_key_path,
            public_key_path=public_key_path,
            public_key=public_key,
        )

    def delete_key_pair(self, name: str) -> bool:
        """Delete a key pair.

        Args:
            name: Base name for the key files.

        Returns:
            True if deleted, False if not found.
        """
        return self._remove_files(
            self._keys_dir / name, self._keys_dir / f"{name}.pub"
        )

    @staticmethod
    def _remove_files(*paths: Path) -> bool:
        deleted = False
        for path in paths:
            if path.exists():
                path.unlink()
                deleted = True
        return deleted
