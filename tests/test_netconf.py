"""Tests for NETCONF framing and reply parsing."""
import pytest

from junos_commit.devices import NetconfTransport, create_transport
from junos_commit.devices.base import DeviceConfig
from junos_commit.devices.netconf import (
    MESSAGE_DELIMITER,
    parse_rpc_reply,
    parse_system_information,
    rpc_command,
    rpc_commit,
    rpc_load_set,
)

NS = 'xmlns="urn:ietf:params:xml:ns:netconf:base:1.0"'


class FakeChannel:
    """Stands in for a paramiko channel."""

    def __init__(self, chunks: list[bytes]):
        self.chunks = list(chunks)
        self.sent: list[bytes] = []

    def recv(self, size: int) -> bytes:
        return self.chunks.pop(0) if self.chunks else b""

    def sendall(self, data: bytes) -> None:
        self.sent.append(data)


@pytest.fixture
def transport():
    return NetconfTransport(DeviceConfig(name="srx-edge", host="192.0.2.1"))


class TestPayloads:
    """Tests for RPC payload builders."""

    def test_command_escaped(self):
        assert rpc_command("show configuration vlans | display set") == (
            '<command format="text">show configuration vlans | display set</command>'
        )
        assert "&lt;" in rpc_command("show <x>")

    def test_load_set_joins_lines(self):
        payload = rpc_load_set(['set vlans a description "x & y"', "set vlans a vlan-id 10"])
        assert payload.startswith('<load-configuration action="set" format="text">')
        assert '"x &amp; y"\nset vlans a vlan-id 10' in payload

    def test_commit(self):
        assert rpc_commit("create resource junos_vlan") == (
            "<commit-configuration><log>create resource junos_vlan</log></commit-configuration>"
        )

    def test_commit_confirmed(self):
        payload = rpc_commit("x", confirmed_minutes=5)
        assert "<confirmed/>" in payload
        assert "<confirm-timeout>5</confirm-timeout>" in payload


class TestParseReply:
    """Tests for rpc-reply parsing."""

    def test_ok(self):
        reply = parse_rpc_reply(f"<rpc-reply {NS} message-id=\"1\"><ok/></rpc-reply>")
        assert not reply.failed
        assert reply.errors == []
        assert reply.data == "<ok/>"

    def test_configuration_output_text(self):
        raw = (
            f"<rpc-reply {NS}><configuration-output>\n"
            "set vlans blue vlan-id 10\nset vlans blue description &quot;a&lt;b&quot;\n"
            "</configuration-output></rpc-reply>"
        )
        reply = parse_rpc_reply(raw)
        assert 'set vlans blue description "a<b"' in reply.text
        assert reply.text.strip().startswith("set vlans blue vlan-id 10")

    def test_nested_errors_and_warnings(self):
        raw = (
            f"<rpc-reply {NS}><commit-results>"
            "<rpc-error><error-severity>warning</error-severity>"
            "<error-path>[edit security]</error-path>"
            "<error-message>statement has no contents; ignored</error-message></rpc-error>"
            "<rpc-error><error-severity>error</error-severity>"
            "<error-info><bad-element>vlan-id</bad-element></error-info>"
            "<error-message>Value 5000 is not within range</error-message></rpc-error>"
            "</commit-results></rpc-reply>"
        )
        reply = parse_rpc_reply(raw)
        assert len(reply.errors) == 2
        assert reply.failed
        warning, error = reply.errors
        assert not warning.is_error
        assert warning.path == "[edit security]"
        assert error.element == "vlan-id"
        assert reply.error_message() == "Value 5000 is not within range | element: vlan-id"

    def test_warnings_only_not_failed(self):
        raw = (
            f"<rpc-reply {NS}><rpc-error><error-severity>warning</error-severity>"
            "<error-message>uncommitted changes will be discarded</error-message>"
            "</rpc-error><ok/></rpc-reply>"
        )
        assert not parse_rpc_reply(raw).failed

    def test_malformed(self):
        with pytest.raises(ConnectionError):
            parse_rpc_reply("<rpc-reply><unclosed></rpc-reply>")

    def test_system_information(self):
        raw = (
            f"<rpc-reply {NS}><system-information>"
            "<hardware-model>srx345</hardware-model><os-name>junos-srxsme</os-name>"
            "<os-version>21.4R3-S1.6</os-version><serial-number>CV123</serial-number>"
            "<host-name>edge1</host-name><cluster-node>true</cluster-node>"
            "</system-information></rpc-reply>"
        )
        facts = parse_system_information(parse_rpc_reply(raw))
        assert facts.hardware_model == "srx345"
        assert facts.os_version == "21.4R3-S1.6"
        assert facts.host_name == "edge1"
        assert facts.cluster_node is True

    def test_system_information_missing(self):
        with pytest.raises(ValueError):
            parse_system_information(parse_rpc_reply(f"<rpc-reply {NS}><ok/></rpc-reply>"))


class TestFraming:
    """Tests for ]]>]]> framing on the channel."""

    def test_read_message_across_chunks(self, transport):
        transport._channel = FakeChannel([b"<rpc-reply><o", b"k/></rpc-reply>]]>", b"]]>next"])
        assert transport._read_message() == "<rpc-reply><ok/></rpc-reply>"
        assert transport._buffer == b"next"

    def test_read_message_eof(self, transport):
        transport._channel = FakeChannel([b"<rpc-reply>"])
        with pytest.raises(EOFError):
            transport._read_message()

    def test_exchange_numbers_messages(self, transport):
        ok = b"<rpc-reply><ok/></rpc-reply>" + MESSAGE_DELIMITER
        channel = FakeChannel([ok, ok])
        transport._channel = channel

        transport._exchange("<lock><target><candidate/></target></lock>")
        transport._exchange("<unlock><target><candidate/></target></unlock>")

        assert b'message-id="1"' in channel.sent[0]
        assert b'message-id="2"' in channel.sent[1]
        assert channel.sent[0].endswith(MESSAGE_DELIMITER)

    @pytest.mark.asyncio
    async def test_rpc_not_connected(self, transport):
        with pytest.raises(ConnectionError):
            await transport.rpc("<get-system-information/>")

    @pytest.mark.asyncio
    async def test_close_without_connect(self, transport):
        await transport.close()
        await transport.close()
        assert not transport.is_connected


class TestRegistry:
    """Tests for the transport factory."""

    def test_netconf(self):
        transport = create_transport(DeviceConfig(name="a", host="192.0.2.1"))
        assert isinstance(transport, NetconfTransport)
        assert transport.device_id == "a"

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            create_transport(DeviceConfig(name="a", host="192.0.2.1", type="telnet"))
