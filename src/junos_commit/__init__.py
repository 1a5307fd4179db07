"""junos-commit: lock/stage/commit transactions and a set-line codec for Junos."""
from .config.schema import EngineOptions
from .config_engine import ConfigEngine, SerializationGate
from .devices.base import DeviceConfig, DeviceFacts

__version__ = "0.1.0"

__all__ = [
    "ConfigEngine",
    "DeviceConfig",
    "DeviceFacts",
    "EngineOptions",
    "SerializationGate",
    "__version__",
]
