"""NETCONF over SSH transport for Junos devices.

Junos exposes NETCONF as the `netconf` SSH subsystem (port 830 by default,
or 22 when `set system services netconf ssh` is bound there). This
transport speaks base:1.0 framing: every message ends with `]]>]]>`.

RPCs used by the engine:
- <get-system-information/>        : facts at session open
- <command format="text">          : "show configuration <path> | display set"
- <lock>/<unlock> candidate        : exclusive configuration lock
- <load-configuration action="set"> : stage set/delete lines
- <commit-configuration>           : commit, commit confirmed, commit check
- <delete-config> candidate        : discard staged edits
- <close-session/>                 : polite goodbye before closing SSH
"""
import asyncio
import io
import logging
import re
import threading
import xml.etree.ElementTree as ET
from typing import Optional
from xml.sax.saxutils import escape

import paramiko

from .base import DeviceConfig, DeviceFacts, RPCError, RPCReply, Transport
from ..config.schema import EngineOptions
from ..utils.connection import with_retry
from ..utils.logging_config import netconf_logger, setup_netconf_debug_log, timed

logger = logging.getLogger(__name__)

NETCONF_NS = "urn:ietf:params:xml:ns:netconf:base:1.0"
MESSAGE_DELIMITER = b"]]>]]>"

RPC_SYSTEM_INFORMATION = "<get-system-information/>"
RPC_COMMAND = '<command format="text">{command}</command>'
RPC_LOAD_SET = (
    '<load-configuration action="set" format="text">'
    "<configuration-set>{lines}</configuration-set></load-configuration>"
)
RPC_COMMIT = "<commit-configuration><log>{log}</log></commit-configuration>"
RPC_COMMIT_CONFIRMED = (
    "<commit-configuration><confirmed/>"
    "<confirm-timeout>{minutes}</confirm-timeout>"
    "<log>{log}</log></commit-configuration>"
)
RPC_COMMIT_CHECK = "<commit-configuration><check/></commit-configuration>"
RPC_LOCK_CANDIDATE = "<lock><target><candidate/></target></lock>"
RPC_UNLOCK_CANDIDATE = "<unlock><target><candidate/></target></unlock>"
RPC_CLEAR_CANDIDATE = "<delete-config><target><candidate/></target></delete-config>"
RPC_CLOSE_SESSION = "<close-session/>"

CLIENT_HELLO = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    f'<hello xmlns="{NETCONF_NS}"><capabilities>'
    "<capability>urn:ietf:params:netconf:base:1.0</capability>"
    "</capabilities></hello>"
)

_REPLY_BODY = re.compile(r"<rpc-reply[^>]*>(.*)</rpc-reply>", re.DOTALL)


def rpc_command(command: str) -> str:
    return RPC_COMMAND.format(command=escape(command))


def rpc_load_set(lines: list[str]) -> str:
    return RPC_LOAD_SET.format(lines=escape("\n".join(lines)))


def rpc_commit(log: str, confirmed_minutes: Optional[int] = None) -> str:
    if confirmed_minutes:
        return RPC_COMMIT_CONFIRMED.format(minutes=confirmed_minutes, log=escape(log))
    return RPC_COMMIT.format(log=escape(log))


def _local(tag: str) -> str:
    """Strip the namespace part of an ElementTree tag."""
    return tag.rsplit("}", 1)[-1]


def _child_text(elem: ET.Element, name: str) -> str:
    for child in elem:
        if _local(child.tag) == name:
            return (child.text or "").strip()
    return ""


def parse_rpc_reply(raw: str) -> RPCReply:
    """Parse a raw <rpc-reply> document.

    Every <rpc-error> in the tree is collected, including the ones nested
    in <commit-results> or <load-configuration-results>. `text` holds the
    text content of the reply (the body of <configuration-output> or
    <output> for text commands).
    """
    try:
        root = ET.fromstring(raw)
    except ET.ParseError as e:
        raise ConnectionError(f"malformed rpc-reply: {e}: {raw[:200]!r}")

    errors = []
    for elem in root.iter():
        if _local(elem.tag) != "rpc-error":
            continue
        element = ""
        for sub in elem:
            if _local(sub.tag) == "error-info":
                element = _child_text(sub, "bad-element")
        errors.append(RPCError(
            message=_child_text(elem, "error-message"),
            severity=_child_text(elem, "error-severity") or "error",
            path=_child_text(elem, "error-path"),
            element=element,
        ))

    match = _REPLY_BODY.search(raw)
    data = match.group(1) if match else ""

    text_parts = []
    for child in root:
        if _local(child.tag) == "rpc-error":
            continue
        text_parts.append("".join(child.itertext()))
    text = "".join(text_parts)

    return RPCReply(data=data, errors=errors, raw=raw, text=text)


def parse_system_information(reply: RPCReply) -> DeviceFacts:
    """Build DeviceFacts from a <get-system-information/> reply."""
    root = ET.fromstring(reply.raw)
    info = None
    for elem in root.iter():
        if _local(elem.tag) == "system-information":
            info = elem
            break
    if info is None:
        raise ValueError("no <system-information> in reply")

    cluster_node: Optional[bool] = None
    for child in info:
        if _local(child.tag) == "cluster-node":
            cluster_node = (child.text or "true").strip().lower() != "false"

    return DeviceFacts(
        hardware_model=_child_text(info, "hardware-model"),
        os_version=_child_text(info, "os-version"),
        os_name=_child_text(info, "os-name"),
        serial_number=_child_text(info, "serial-number"),
        host_name=_child_text(info, "host-name"),
        cluster_node=cluster_node,
    )


def _load_pkey(pem: str, passphrase: Optional[str]) -> paramiko.PKey:
    """Load a private key of any supported type from PEM text."""
    last_error: Optional[Exception] = None
    for key_class in (paramiko.RSAKey, paramiko.ECDSAKey, paramiko.Ed25519Key):
        try:
            return key_class.from_private_key(io.StringIO(pem), password=passphrase)
        except paramiko.SSHException as e:
            last_error = e
    raise ConnectionError(f"failed to load PEM private key: {last_error}")


class NetconfTransport(Transport):
    """NETCONF 1.0 session over a paramiko SSH channel."""

    def __init__(self, config: DeviceConfig, options: Optional[EngineOptions] = None):
        super().__init__(config)
        self.options = options or EngineOptions()
        self._client: Optional[paramiko.SSHClient] = None
        self._channel: Optional[paramiko.Channel] = None
        self._buffer = b""
        self._message_id = 0
        # One exchange at a time on the channel, even across a cancelled task
        self._io_lock = threading.Lock()
        if self.options.debug_netconf_log_path:
            setup_netconf_debug_log(
                self.options.debug_netconf_log_path, self.options.file_mode
            )

    async def connect(self) -> None:
        """Open the SSH connection and the netconf subsystem."""
        logger.info(f"Connecting to {self.device_id} at {self.config.host}:{self.config.port}")
        attempts = self.options.ssh_retry_to_establish
        connect = with_retry(max_attempts=attempts, min_wait=1, max_wait=10)(self._connect_once)
        await connect()
        self._connected = True
        logger.info(f"Connected to {self.device_id}")

    @timed("connect")
    async def _connect_once(self) -> None:
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, self._open_channel)

    def _open_channel(self) -> None:
        ssh = paramiko.SSHClient()
        ssh.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        kwargs = {
            "hostname": self.config.host,
            "port": self.config.port,
            "username": self.config.username,
            "timeout": self.options.ssh_timeout_to_establish,
            "look_for_keys": False,
            "allow_agent": True,
        }
        password = self.config.get_password()
        if password:
            kwargs["password"] = password
        if self.config.sshkey_pem:
            kwargs["pkey"] = _load_pkey(self.config.sshkey_pem, self.config.keypass)
        elif self.config.sshkey_file:
            kwargs["key_filename"] = self.config.sshkey_file
            if self.config.keypass:
                kwargs["passphrase"] = self.config.keypass
        if self.config.ssh_ciphers:
            wanted = set(self.config.ssh_ciphers)
            kwargs["disabled_algorithms"] = {
                "ciphers": [c for c in paramiko.Transport._preferred_ciphers if c not in wanted]
            }

        try:
            ssh.connect(**kwargs)
            channel = ssh.get_transport().open_session()
            channel.settimeout(self.config.timeout)
            channel.invoke_subsystem("netconf")
            self._client = ssh
            self._channel = channel
            self._buffer = b""
            server_hello = self._read_message()
            netconf_logger.debug(f"{self.device_id} <<< {server_hello}")
            self._write_message(CLIENT_HELLO)
        except paramiko.AuthenticationException as e:
            ssh.close()
            self._client = None
            self._channel = None
            raise ConnectionError(f"authentication failed on {self.config.host}: {e}")
        except Exception:
            ssh.close()
            self._client = None
            self._channel = None
            raise

    def _write_message(self, message: str) -> None:
        if not self._channel:
            raise ConnectionError("Not connected")
        self._channel.sendall(message.encode("utf-8") + MESSAGE_DELIMITER)

    def _read_message(self) -> str:
        if not self._channel:
            raise ConnectionError("Not connected")
        while MESSAGE_DELIMITER not in self._buffer:
            chunk = self._channel.recv(65536)
            if not chunk:
                raise EOFError(f"netconf session to {self.device_id} closed by peer")
            self._buffer += chunk
        message, _, self._buffer = self._buffer.partition(MESSAGE_DELIMITER)
        return message.decode("utf-8", errors="replace").strip()

    def _exchange(self, payload: str) -> str:
        with self._io_lock:
            self._message_id += 1
            message = f'<rpc xmlns="{NETCONF_NS}" message-id="{self._message_id}">{payload}</rpc>'
            netconf_logger.debug(f"{self.device_id} >>> {message}")
            self._write_message(message)
            reply = self._read_message()
            netconf_logger.debug(f"{self.device_id} <<< {reply}")
            return reply

    async def rpc(self, payload: str) -> RPCReply:
        """Send one RPC and wait for its reply."""
        if not self._channel:
            raise ConnectionError("Not connected")
        loop = asyncio.get_event_loop()
        try:
            raw = await loop.run_in_executor(None, self._exchange, payload)
        except (OSError, EOFError, paramiko.SSHException) as e:
            self._connected = False
            raise ConnectionError(f"netconf exchange with {self.device_id} failed: {e}")
        return parse_rpc_reply(raw)

    async def close(self) -> None:
        """Send <close-session/> and tear down SSH. Safe to call twice."""
        if not self._client:
            return
        loop = asyncio.get_event_loop()
        try:
            if self._channel and self._connected:
                await loop.run_in_executor(None, self._exchange, RPC_CLOSE_SESSION)
        except Exception as e:
            logger.warning(f"close-session on {self.device_id} failed: {e}")
        finally:
            client = self._client
            self._client = None
            self._channel = None
            self._connected = False
            client.close()
            logger.info(f"Disconnected from {self.device_id}")
