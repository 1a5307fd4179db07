"""BGP peer group.

Export and import policies are evaluated in order, so both stay ordered
lists end to end.
"""
from dataclasses import dataclass
from typing import Optional

from ..config_engine.capabilities import Feature
from ..config_engine.schema import ConfigResource, block, flag, key, repeated, statement


@dataclass
class BgpMultipath:
    multiple_as: bool = flag("multiple-as")
    allow_protection: bool = flag("allow-protection")
    disable: bool = flag("disable")


@dataclass
class BfdLivenessDetection:
    minimum_interval: Optional[int] = statement("minimum-interval")
    minimum_receive_interval: Optional[int] = statement("minimum-receive-interval")
    multiplier: Optional[int] = statement("multiplier")
    session_mode: Optional[str] = statement("session-mode")


@dataclass
class BgpGroup(ConfigResource):
    resource_type = "junos_bgp_group"
    required_feature = Feature.ROUTER

    name: str = key()
    routing_instance: str = key(default="default")
    type: Optional[str] = statement("type")
    description: Optional[str] = statement("description", quoted=True)
    local_address: Optional[str] = statement("local-address")
    local_as: Optional[str] = statement("local-as")
    peer_as: Optional[str] = statement("peer-as")
    preference: Optional[int] = statement("preference")
    local_preference: Optional[int] = statement("local-preference")
    metric_out: Optional[int] = statement("metric-out")
    hold_time: Optional[int] = statement("hold-time")
    authentication_key: Optional[str] = statement("authentication-key", quoted=True)
    export: list[str] = repeated("export")
    import_: list[str] = repeated("import")
    passive: bool = flag("passive")
    remove_private: bool = flag("remove-private")
    log_updown: bool = flag("log-updown")
    multipath: Optional[BgpMultipath] = block("multipath")
    bfd_liveness_detection: Optional[BfdLivenessDetection] = block("bfd-liveness-detection")

    def config_path(self) -> str:
        if self.routing_instance == "default":
            return f"protocols bgp group {self.name}"
        return f"routing-instances {self.routing_instance} protocols bgp group {self.name}"
