"""Local record store for aqoo."""

from aqoo.store.registry import HostRegistry

__all__ = ["HostRegistry"]
