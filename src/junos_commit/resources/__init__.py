"""Resource records understood by the config engine."""
from .application_set import ApplicationSet
from .bgp_group import BfdLivenessDetection, BgpGroup, BgpMultipath
from .interface import (
    Family,
    FamilyEthernetSwitching,
    FamilyInet,
    FamilyInet6,
    Interface,
    InterfaceAddress,
    Unit,
)
from .security_zone import SecurityZone, ZoneInterface
from .vlan import Vlan, VlanVxlan

__all__ = [
    "ApplicationSet",
    "BfdLivenessDetection",
    "BgpGroup",
    "BgpMultipath",
    "Family",
    "FamilyEthernetSwitching",
    "FamilyInet",
    "FamilyInet6",
    "Interface",
    "InterfaceAddress",
    "Unit",
    "SecurityZone",
    "ZoneInterface",
    "Vlan",
    "VlanVxlan",
]
