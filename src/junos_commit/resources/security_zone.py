"""Security zone on SRX platforms."""
from dataclasses import dataclass
from typing import Optional

from ..config_engine.capabilities import Feature
from ..config_engine.schema import ConfigResource, flag, key, keyed_blocks, repeated, statement


@dataclass
class ZoneInterface:
    name: str = key()
    host_inbound_protocols: list[str] = repeated(
        "host-inbound-traffic protocols", ordered=False
    )
    host_inbound_services: list[str] = repeated(
        "host-inbound-traffic system-services", ordered=False
    )


@dataclass
class SecurityZone(ConfigResource):
    resource_type = "junos_security_zone"
    required_feature = Feature.SECURITY

    name: str = key()
    description: Optional[str] = statement("description", quoted=True)
    application_tracking: bool = flag("application-tracking")
    host_inbound_protocols: list[str] = repeated(
        "host-inbound-traffic protocols", ordered=False
    )
    host_inbound_services: list[str] = repeated(
        "host-inbound-traffic system-services", ordered=False
    )
    interfaces: list[ZoneInterface] = keyed_blocks("interfaces", ordered=False)
    screen: Optional[str] = statement("screen")
    source_identity_log: bool = flag("source-identity-log")
    tcp_rst: bool = flag("tcp-rst")

    def config_path(self) -> str:
        return f"security zones security-zone {self.name}"
