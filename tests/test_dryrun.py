"""Tests for the dry-run session."""
import os
import stat

import pytest

from fakes import FakeDevice
from junos_commit.config.schema import EngineOptions
from junos_commit.config_engine import (
    EMPTY_OUTPUT,
    ConfigEngine,
    DryRunSession,
    SerializationGate,
    build_lines,
)
from junos_commit.devices.base import DeviceConfig
from junos_commit.resources import BgpGroup, SecurityZone, Vlan, VlanVxlan

DEVICE = DeviceConfig(name="qfx-leaf1", host="192.0.2.11")


def no_transport(config, options):
    raise AssertionError("dry-run must not open a transport")


class TestDryRunSession:
    """Tests for DryRunSession."""

    @pytest.mark.asyncio
    async def test_stage_goes_to_list(self):
        sink = []
        async with DryRunSession(sink) as session:
            async with session.transaction("create resource junos_vlan") as transaction:
                await transaction.stage(["set vlans blue vlan-id 10"])
                await transaction.stage(["set vlans blue description guest"])
                assert await transaction.commit() == []

        assert sink == ["set vlans blue vlan-id 10", "set vlans blue description guest"]

    @pytest.mark.asyncio
    async def test_reads_see_nothing(self):
        async with DryRunSession() as session:
            assert await session.command("show configuration vlans | display set") == EMPTY_OUTPUT
            assert await session.show_config("vlans blue") == EMPTY_OUTPUT
            assert session.dry_run
            assert session.facts is None

    @pytest.mark.asyncio
    async def test_file_sink(self, tmp_path):
        setfile = tmp_path / "out" / "fake.set"
        setfile.parent.mkdir()
        options = EngineOptions(fake_create_with_setfile=str(setfile), file_permission="0600")

        for name in ("blue", "red"):
            async with DryRunSession(options=options) as session:
                async with session.transaction("x") as transaction:
                    await transaction.stage([f"set vlans {name}"])
                    await transaction.commit()

        assert setfile.read_text() == "set vlans blue\nset vlans red\n"
        assert stat.S_IMODE(os.stat(setfile).st_mode) == 0o600
        assert session.lines == ["set vlans blue", "set vlans red"]

    @pytest.mark.asyncio
    async def test_clear_is_noop(self):
        sink = []
        async with DryRunSession(sink) as session:
            async with session.transaction("x") as transaction:
                await transaction.stage(["set vlans blue"])
        # Lines already written stay written: the sink is append only
        assert sink == ["set vlans blue"]
        assert session.clear_errors == []


class TestDryRunEngine:
    """Tests for ConfigEngine with fake_create_with_setfile."""

    @pytest.mark.asyncio
    async def test_create_does_not_connect(self, tmp_path):
        setfile = tmp_path / "fake.set"
        options = EngineOptions(fake_create_with_setfile=str(setfile))
        engine = ConfigEngine(DEVICE, SerializationGate(), options, transport_factory=no_transport)

        vlan = Vlan(name="blue", vlan_id="10", vxlan=VlanVxlan(vni=10010))
        result = await engine.create(vlan)

        assert result.dry_run
        assert result.lines == build_lines(vlan)
        assert setfile.read_text().splitlines() == build_lines(vlan)

    @pytest.mark.asyncio
    async def test_capability_gate_skipped(self, tmp_path):
        """No live facts in dry-run, so no capability check either."""
        options = EngineOptions(fake_create_with_setfile=str(tmp_path / "fake.set"))
        engine = ConfigEngine(DEVICE, SerializationGate(), options, transport_factory=no_transport)
        result = await engine.create(SecurityZone(name="trust"))
        assert result.lines == ["set security zones security-zone trust"]

    @pytest.mark.asyncio
    async def test_same_lines_as_live(self, tmp_path):
        """The dry-run sink holds exactly what a live session stages."""
        group = BgpGroup(name="R1", peer_as="65001", export=["P1", "P2"], passive=True)

        device = FakeDevice("mx204", "22.2R3")
        live = ConfigEngine(DEVICE, SerializationGate(), EngineOptions(), transport_factory=device.transport)
        await live.create(group)
        staged = [detail for _, kind, detail in device.log if kind == "load"]

        setfile = tmp_path / "fake.set"
        dry = ConfigEngine(
            DEVICE,
            SerializationGate(),
            EngineOptions(fake_create_with_setfile=str(setfile)),
            transport_factory=no_transport,
        )
        await dry.create(group)

        assert staged == ["\n".join(build_lines(group))]
        assert setfile.read_text().splitlines() == staged[0].splitlines()

    @pytest.mark.asyncio
    async def test_update_and_delete_live_unless_flagged(self, tmp_path):
        device = FakeDevice("qfx5120-48y", "21.4R3")
        device.load("set vlans blue vlan-id 10")
        options = EngineOptions(fake_create_with_setfile=str(tmp_path / "fake.set"))
        engine = ConfigEngine(DEVICE, SerializationGate(), options, transport_factory=device.transport)

        result = await engine.delete(Vlan(name="blue"))

        assert not result.dry_run
        assert device.committed == []

    @pytest.mark.asyncio
    async def test_update_and_delete_faked_when_flagged(self, tmp_path):
        setfile = tmp_path / "fake.set"
        options = EngineOptions(
            fake_create_with_setfile=str(setfile),
            fake_update_also=True,
            fake_delete_also=True,
        )
        engine = ConfigEngine(DEVICE, SerializationGate(), options, transport_factory=no_transport)

        await engine.update(Vlan(name="blue", vlan_id="10"), Vlan(name="blue", vlan_id="20"))
        await engine.delete(Vlan(name="blue"))

        assert setfile.read_text().splitlines() == [
            "delete vlans blue",
            "set vlans blue vlan-id 20",
            "delete vlans blue",
        ]
