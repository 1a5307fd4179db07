"""Capability gate: which features a device supports, from its facts alone.

Pure functions over DeviceFacts. No I/O, so an unsupported operation fails
before any lock is taken.
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..devices.base import DeviceFacts
from ..errors import UnsupportedFeatureError


class Feature(str, Enum):
    SECURITY = "security"
    CHASSIS_CLUSTER = "chassis-cluster"
    ROUTER = "router"
    SWITCHING = "switching"
    VXLAN = "vxlan"
    COMMIT_CONFIRMED = "commit-confirmed"


@dataclass(frozen=True)
class CapabilityRule:
    """Hardware-model prefixes (empty = any model) and a minimum Junos release."""
    model_prefixes: tuple[str, ...] = ()
    min_version: Optional[tuple[int, int]] = None


_SRX_FAMILY = ("srx", "vsrx", "j")

CAPABILITY_RULES: dict[Feature, CapabilityRule] = {
    Feature.SECURITY: CapabilityRule(model_prefixes=_SRX_FAMILY),
    Feature.CHASSIS_CLUSTER: CapabilityRule(model_prefixes=_SRX_FAMILY),
    Feature.ROUTER: CapabilityRule(
        model_prefixes=("mx", "vmx", "srx", "vsrx", "j", "ptx", "acx"),
    ),
    Feature.SWITCHING: CapabilityRule(model_prefixes=("ex", "qfx", "mx", "vmx")),
    Feature.VXLAN: CapabilityRule(
        model_prefixes=("ex", "qfx", "mx", "vmx"),
        min_version=(14, 1),
    ),
    Feature.COMMIT_CONFIRMED: CapabilityRule(min_version=(11, 4)),
}

# 21.4R3-S1.6, 12.3X48-D105.4, 18.1
_VERSION_RE = re.compile(r"^\s*(\d+)\.(\d+)")


def parse_version(version: str) -> Optional[tuple[int, int]]:
    """Return (major, minor) of a Junos release string, or None."""
    match = _VERSION_RE.match(version or "")
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def supports(feature: Feature, facts: DeviceFacts) -> bool:
    rule = CAPABILITY_RULES[feature]
    if rule.model_prefixes:
        model = facts.hardware_model.lower()
        if not model.startswith(rule.model_prefixes):
            return False
    if rule.min_version is not None:
        version = parse_version(facts.os_version)
        if version is None or version < rule.min_version:
            return False
    return True


def require(feature: Feature, facts: DeviceFacts) -> None:
    """Raise UnsupportedFeatureError unless `facts` support `feature`."""
    if not supports(feature, facts):
        raise UnsupportedFeatureError(feature.value, facts.hardware_model)


def supported_features(facts: DeviceFacts) -> list[Feature]:
    return [feature for feature in Feature if supports(feature, facts)]
