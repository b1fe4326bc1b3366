"""Core layer for aqoo."""

from aqoo.core.config import Config
from aqoo.core.types import (
    HostEntry,
    KeyPair,
    ProvisioningOutcome,
    ProvisioningRequest,
    Settings,
    SSHEndpoint,
)

__all__ = [
    "Config",
    "HostEntry",
    "KeyPair",
    "ProvisioningOutcome",
    "ProvisioningRequest",
    "Settings",
    "SSHEndpoint",
]
