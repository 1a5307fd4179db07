"""VLAN on switching platforms (EX, QFX, MX)."""
from dataclasses import dataclass
from typing import Optional

from ..config_engine.capabilities import Feature
from ..config_engine.schema import ConfigResource, block, flag, key, repeated, statement


@dataclass
class VlanVxlan:
    """`vxlan` stanza of a VLAN. Present with all defaults is meaningful."""
    vni: Optional[int] = statement("vni")
    encapsulate_inner_vlan: bool = flag("encapsulate-inner-vlan")
    ingress_node_replication: bool = flag("ingress-node-replication")
    multicast_group: Optional[str] = statement("multicast-group")
    ovsdb_managed: bool = flag("ovsdb-managed")
    unreachable_vtep_aging_timer: Optional[int] = statement("unreachable-vtep-aging-timer")


@dataclass
class Vlan(ConfigResource):
    resource_type = "junos_vlan"
    required_feature = Feature.SWITCHING

    name: str = key()
    description: Optional[str] = statement("description", quoted=True)
    # A number, or the keywords "none" and "all"
    vlan_id: Optional[str] = statement("vlan-id")
    vlan_id_list: list[str] = repeated("vlan-id-list", ordered=False)
    l3_interface: Optional[str] = statement("l3-interface")
    forward_filter_input: Optional[str] = statement("forwarding-options filter input")
    forward_filter_output: Optional[str] = statement("forwarding-options filter output")
    private_vlan: Optional[str] = statement("private-vlan")
    community_vlans: list[str] = repeated("community-vlans", ordered=False)
    isolated_vlan: Optional[str] = statement("isolated-vlan")
    service_id: Optional[int] = statement("service-id")
    vxlan: Optional[VlanVxlan] = block("vxlan")

    def config_path(self) -> str:
        return f"vlans {self.name}"
