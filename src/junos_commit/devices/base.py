"""Base transport abstraction for Junos devices."""
import os
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)

ERROR_SEVERITY = "error"


@dataclass
class DeviceConfig:
    """Connection settings for a single device."""
    name: str
    host: str
    port: int = 830
    username: str = ""
    password: Optional[str] = None
    password_env: str = "JUNOS_PASSWORD"
    sshkey_file: Optional[str] = None
    sshkey_pem: Optional[str] = None
    keypass: Optional[str] = None
    type: str = "netconf"
    timeout: int = 30
    ssh_ciphers: list[str] = field(default_factory=list)

    def get_password(self) -> str:
        """Get password from config or environment variable."""
        if self.password:
            return self.password
        return os.environ.get(self.password_env, "")


@dataclass(frozen=True)
class DeviceFacts:
    """Immutable snapshot of device facts taken when a session opens."""
    hardware_model: str
    os_version: str
    os_name: str = ""
    serial_number: str = ""
    host_name: str = ""
    cluster_node: Optional[bool] = None


@dataclass(frozen=True)
class RPCError:
    """One <rpc-error> entry of a reply."""
    message: str
    severity: str = ERROR_SEVERITY
    path: str = ""
    element: str = ""

    @property
    def is_error(self) -> bool:
        return self.severity == ERROR_SEVERITY

    def __str__(self) -> str:
        parts = [self.message]
        if self.path:
            parts.append(f"path: {self.path}")
        if self.element:
            parts.append(f"element: {self.element}")
        return " | ".join(parts)


@dataclass
class RPCReply:
    """Parsed <rpc-reply>."""
    data: str = ""
    errors: list[RPCError] = field(default_factory=list)
    raw: str = ""
    text: str = ""

    @property
    def failed(self) -> bool:
        return any(e.is_error for e in self.errors)

    def error_message(self) -> str:
        return "\n".join(str(e) for e in self.errors if e.is_error)


class Transport(ABC):
    """Authenticated request/reply channel to one device.

    The engine sees only "send an RPC payload, receive a reply".
    """

    def __init__(self, config: DeviceConfig):
        self.config = config
        self._connected = False

    @property
    def device_id(self) -> str:
        return self.config.name

    @property
    def is_connected(self) -> bool:
        return self._connected

    @abstractmethod
    async def connect(self) -> None:
        """Establish the channel. Raises ConnectionError on failure."""
        pass

    @abstractmethod
    async def rpc(self, payload: str) -> RPCReply:
        """Send one RPC body and return the parsed reply."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the channel. Must be idempotent."""
        pass
