"""Physical interface with its logical units.

    set interfaces ge-0/0/0 description "uplink"
    set interfaces ge-0/0/0 unit 0 family inet address 10.0.0.1/24
"""
from dataclasses import dataclass
from typing import Optional

from ..config_engine.schema import (
    ConfigResource,
    block,
    flag,
    key,
    keyed_blocks,
    repeated,
    statement,
)


@dataclass
class InterfaceAddress:
    cidr_ip: str = key()
    primary: bool = flag("primary")
    preferred: bool = flag("preferred")


@dataclass
class FamilyInet:
    address: list[InterfaceAddress] = keyed_blocks("address")
    mtu: Optional[int] = statement("mtu")
    filter_input: Optional[str] = statement("filter input")
    filter_output: Optional[str] = statement("filter output")
    dhcp: bool = flag("dhcp")


@dataclass
class FamilyInet6:
    address: list[InterfaceAddress] = keyed_blocks("address")
    mtu: Optional[int] = statement("mtu")
    filter_input: Optional[str] = statement("filter input")
    filter_output: Optional[str] = statement("filter output")


@dataclass
class FamilyEthernetSwitching:
    interface_mode: Optional[str] = statement("interface-mode")
    vlan_members: list[str] = repeated("vlan members", ordered=False)


@dataclass
class Family:
    inet: Optional[FamilyInet] = block("inet")
    inet6: Optional[FamilyInet6] = block("inet6")
    ethernet_switching: Optional[FamilyEthernetSwitching] = block("ethernet-switching")


@dataclass
class Unit:
    name: int = key()
    description: Optional[str] = statement("description", quoted=True)
    disable: bool = flag("disable")
    vlan_id: Optional[int] = statement("vlan-id")
    family: Optional[Family] = block("family")


@dataclass
class Interface(ConfigResource):
    resource_type = "junos_interface"

    name: str = key()
    description: Optional[str] = statement("description", quoted=True)
    disable: bool = flag("disable")
    mtu: Optional[int] = statement("mtu")
    vlan_tagging: bool = flag("vlan-tagging")
    flexible_vlan_tagging: bool = flag("flexible-vlan-tagging")
    encapsulation: Optional[str] = statement("encapsulation")
    ether_802_3ad: Optional[str] = statement("ether-options 802.3ad")
    unit: list[Unit] = keyed_blocks("unit", ordered=False)

    def config_path(self) -> str:
        return f"interfaces {self.name}"
