"""Engine options and device inventory.

`DeviceInventory` lives in `junos_commit.config.inventory`; it builds
engines, so importing it here would be circular.
"""
from .schema import EngineOptions

__all__ = ["EngineOptions"]
