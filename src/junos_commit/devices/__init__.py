"""Transports for Junos devices."""
from typing import Optional

from .base import DeviceConfig, DeviceFacts, RPCError, RPCReply, Transport
from .netconf import NetconfTransport
from ..config.schema import EngineOptions

__all__ = [
    "DeviceConfig",
    "DeviceFacts",
    "RPCError",
    "RPCReply",
    "Transport",
    "NetconfTransport",
    "create_transport",
]

# Transport type registry
TRANSPORT_TYPES = {
    "netconf": NetconfTransport,
}


def create_transport(config: DeviceConfig, options: Optional[EngineOptions] = None) -> Transport:
    """Factory function to create a transport for a device."""
    transport_type = (config.type or "").lower()
    if transport_type not in TRANSPORT_TYPES:
        raise ValueError(f"Unknown transport type: {transport_type}")

    transport_class = TRANSPORT_TYPES[transport_type]
    return transport_class(config, options)
