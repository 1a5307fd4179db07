"""Tests for the capability gate."""
import pytest

from junos_commit.config_engine.capabilities import (
    CAPABILITY_RULES,
    Feature,
    parse_version,
    require,
    supported_features,
    supports,
)
from junos_commit.devices.base import DeviceFacts
from junos_commit.errors import UnsupportedFeatureError


def facts(model: str, version: str = "21.4R3-S1.6") -> DeviceFacts:
    return DeviceFacts(hardware_model=model, os_version=version)


class TestParseVersion:
    """Tests for Junos release parsing."""

    @pytest.mark.parametrize("version,expected", [
        ("21.4R3-S1.6", (21, 4)),
        ("12.3X48-D105.4", (12, 3)),
        ("18.1", (18, 1)),
        ("14.1X53-D40.8", (14, 1)),
    ])
    def test_valid(self, version, expected):
        assert parse_version(version) == expected

    @pytest.mark.parametrize("version", ["", "junos", "R3.1", None])
    def test_unparseable(self, version):
        assert parse_version(version) is None


class TestSupports:
    """Tests for feature predicates."""

    @pytest.mark.parametrize("model", ["srx345", "SRX4600", "vsrx", "vSRX3.0", "j2350"])
    def test_security_on_srx_family(self, model):
        assert supports(Feature.SECURITY, facts(model))
        assert supports(Feature.CHASSIS_CLUSTER, facts(model))

    @pytest.mark.parametrize("model", ["ex4300-48t", "qfx5120-48y", "mx960", "ptx10008"])
    def test_security_elsewhere(self, model):
        assert not supports(Feature.SECURITY, facts(model))
        assert not supports(Feature.CHASSIS_CLUSTER, facts(model))

    def test_router(self):
        assert supports(Feature.ROUTER, facts("mx204"))
        assert supports(Feature.ROUTER, facts("vmx"))
        assert supports(Feature.ROUTER, facts("acx7100"))
        assert not supports(Feature.ROUTER, facts("ex2300-c-12p"))

    def test_switching(self):
        assert supports(Feature.SWITCHING, facts("ex4300-48t"))
        assert supports(Feature.SWITCHING, facts("qfx5110-48s-4c"))
        assert not supports(Feature.SWITCHING, facts("srx345"))

    def test_vxlan_needs_release(self):
        assert supports(Feature.VXLAN, facts("qfx5100-48s", "14.1X53-D40.8"))
        assert not supports(Feature.VXLAN, facts("qfx5100-48s", "13.2X51-D35"))
        assert not supports(Feature.VXLAN, facts("srx345", "21.4R3"))

    def test_commit_confirmed_any_model(self):
        assert supports(Feature.COMMIT_CONFIRMED, facts("ex2200", "12.3R12"))
        assert supports(Feature.COMMIT_CONFIRMED, facts("srx240", "11.4R7"))
        assert not supports(Feature.COMMIT_CONFIRMED, facts("srx240", "11.2R5"))

    def test_unparseable_version_fails_minimum(self):
        assert not supports(Feature.VXLAN, facts("qfx5100", "unknown"))
        assert not supports(Feature.COMMIT_CONFIRMED, facts("mx960", ""))
        # No minimum, so the version does not matter
        assert supports(Feature.SECURITY, facts("srx345", "unknown"))

    def test_deterministic(self):
        """Same facts, same answer, every time, for every feature."""
        for model in ("srx345", "ex4300", "mx960", "qfx5120", "ptx1000"):
            f = facts(model)
            first = [supports(feature, f) for feature in Feature]
            second = [supports(feature, f) for feature in Feature]
            assert first == second

    def test_every_feature_has_a_rule(self):
        assert set(CAPABILITY_RULES) == set(Feature)

    def test_supported_features(self):
        assert supported_features(facts("srx345")) == [
            Feature.SECURITY,
            Feature.CHASSIS_CLUSTER,
            Feature.ROUTER,
            Feature.COMMIT_CONFIRMED,
        ]


class TestRequire:
    """Tests for the raising form."""

    def test_passes(self):
        require(Feature.SECURITY, facts("srx345"))

    def test_raises_with_model(self):
        with pytest.raises(UnsupportedFeatureError) as exc_info:
            require(Feature.SECURITY, facts("ex4300-48t"))
        assert exc_info.value.feature == "security"
        assert exc_info.value.hardware_model == "ex4300-48t"
        assert "not compatible with Junos device 'ex4300-48t'" in str(exc_info.value)
