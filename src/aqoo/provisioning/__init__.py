"""Remote user provisioning workflow."""

from aqoo.provisioning.provisioner import Provisioner

__all__ = ["Provisioner"]
