"""Session: one transport plus the device facts taken when it opened.

A session lives for exactly one engine operation:

    async with await Session.open(device, options) as session:
        async with session.transaction("create resource junos_vlan") as txn:
            await txn.stage(lines)
            await txn.commit()

Nothing here retries. Errors carry the command or the lines involved.
"""
import asyncio
import logging
from typing import Callable, Optional

from ..config.schema import EngineOptions
from ..devices import create_transport
from ..devices.base import DeviceConfig, DeviceFacts, RPCReply, Transport
from ..devices.netconf import (
    RPC_CLEAR_CANDIDATE,
    RPC_COMMIT_CHECK,
    RPC_LOCK_CANDIDATE,
    RPC_SYSTEM_INFORMATION,
    RPC_UNLOCK_CANDIDATE,
    parse_system_information,
    rpc_command,
    rpc_commit,
    rpc_load_set,
)
from ..errors import (
    ApplyError,
    CommandError,
    CommitError,
    DeviceConnectionError,
    EngineError,
    LockError,
    TransactionStateError,
)
from ..utils.audit_log import AuditTrail
from ..utils.logging_config import timed
from .schema import (
    CMD_SHOW_CONFIG,
    EMPTY_OUTPUT,
    PIPE_DISPLAY_SET,
    PIPE_DISPLAY_SET_RELATIVE,
    DiagnosticWarning,
)
from .transaction import Transaction

logger = logging.getLogger(__name__)

ClearErrorCallback = Callable[[Exception], None]


class BaseSession:
    """Transaction bookkeeping shared by live and dry-run sessions."""

    dry_run = False

    def __init__(
        self,
        facts: Optional[DeviceFacts],
        options: Optional[EngineOptions] = None,
        audit: Optional[AuditTrail] = None,
        on_clear_error: Optional[ClearErrorCallback] = None,
    ):
        self.facts = facts
        self.options = options or EngineOptions()
        self.audit = audit
        self.on_clear_error = on_clear_error
        self.clear_errors: list[Exception] = []
        self._closed = False
        self._transaction: Optional[Transaction] = None

    @property
    def device_id(self) -> str:
        raise NotImplementedError

    @property
    def is_open(self) -> bool:
        return not self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise EngineError(f"session to {self.device_id} is closed")

    def transaction(self, comment: str = "") -> Transaction:
        """Create a transaction; it takes the lock when entered or locked."""
        self._ensure_open()
        if self._transaction is not None:
            raise TransactionStateError(
                f"a transaction is already open on {self.device_id}"
            )
        return Transaction(self, comment)

    def _attach(self, transaction: Transaction) -> None:
        if self._transaction is not None and self._transaction is not transaction:
            raise TransactionStateError(
                f"a transaction is already open on {self.device_id}"
            )
        self._transaction = transaction

    def _detach(self, transaction: Transaction) -> None:
        if self._transaction is transaction:
            self._transaction = None

    def record_clear_error(self, error: Exception, step: str) -> None:
        """Route a clear failure to the side channel instead of raising it."""
        logger.warning(f"{step} on {self.device_id} failed during clear: {error}")
        self.clear_errors.append(error)
        if self.audit is not None:
            self.audit.log(step, success=False, error=str(error), dry_run=self.dry_run)
        if self.on_clear_error is not None:
            try:
                self.on_clear_error(error)
            except Exception:
                logger.exception("on_clear_error callback failed")

    async def close(self) -> None:
        if self._closed:
            return
        if self._transaction is not None:
            await self._transaction.clear()
        self._closed = True

    async def __aenter__(self) -> "BaseSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class Session(BaseSession):
    """Live session to one Junos device over a Transport."""

    def __init__(
        self,
        transport: Transport,
        facts: DeviceFacts,
        options: Optional[EngineOptions] = None,
        audit: Optional[AuditTrail] = None,
        on_clear_error: Optional[ClearErrorCallback] = None,
    ):
        super().__init__(facts, options, audit, on_clear_error)
        self.transport = transport

    @property
    def device_id(self) -> str:
        return self.transport.device_id

    @classmethod
    async def open(
        cls,
        device: DeviceConfig,
        options: Optional[EngineOptions] = None,
        transport: Optional[Transport] = None,
        audit: Optional[AuditTrail] = None,
        on_clear_error: Optional[ClearErrorCallback] = None,
    ) -> "Session":
        """Connect to `device` and capture its facts.

        Raises:
            DeviceConnectionError: Connection, authentication or the facts
                request failed. The transport is closed before raising.
        """
        options = options or EngineOptions()
        transport = transport or create_transport(device, options)
        try:
            await transport.connect()
            reply = await transport.rpc(RPC_SYSTEM_INFORMATION)
            if reply.failed:
                raise ConnectionError(reply.error_message())
            facts = parse_system_information(reply)
        except Exception as e:
            try:
                await transport.close()
            except Exception as close_error:
                logger.warning(f"closing {device.name} after failed open: {close_error}")
            raise DeviceConnectionError(f"failed to open session to {device.name}: {e}") from e

        logger.info(
            f"Session to {device.name} opened: model={facts.hardware_model} "
            f"version={facts.os_version}"
        )
        return cls(transport, facts, options, audit=audit, on_clear_error=on_clear_error)

    async def _rpc(self, payload: str, what: str) -> RPCReply:
        self._ensure_open()
        try:
            return await self.transport.rpc(payload)
        except ConnectionError as e:
            raise DeviceConnectionError(f"{what} on {self.device_id}: {e}") from e

    @timed("command")
    async def command(self, text: str) -> str:
        """Run one CLI command, return its text output or EMPTY_OUTPUT."""
        reply = await self._rpc(rpc_command(text), "command")
        if reply.failed:
            raise CommandError(text, reply.error_message())
        if not reply.text.strip():
            return EMPTY_OUTPUT
        return reply.text

    async def show_config(self, path: str, relative: bool = True) -> str:
        pipe = PIPE_DISPLAY_SET_RELATIVE if relative else PIPE_DISPLAY_SET
        return await self.command(f"{CMD_SHOW_CONFIG} {path} {pipe}")

    @timed("lock")
    async def config_lock(self) -> None:
        self._ensure_open()
        try:
            reply = await self.transport.rpc(RPC_LOCK_CANDIDATE)
        except ConnectionError as e:
            raise LockError(f"failed to lock config on {self.device_id}: {e}") from e
        if reply.failed:
            raise LockError(f"failed to lock config on {self.device_id}: {reply.error_message()}")

    @timed("stage")
    async def config_set(self, lines: list[str]) -> list[DiagnosticWarning]:
        """Load `lines` into the candidate. Warnings are logged and returned."""
        reply = await self._rpc(rpc_load_set(lines), "load-configuration")
        if reply.failed:
            raise ApplyError(lines, reply.error_message())
        warnings = [DiagnosticWarning.from_rpc_error(e) for e in reply.errors]
        for warning in warnings:
            logger.warning(f"{self.device_id} load-configuration: {warning}")
        if self.options.cmd_sleep_short:
            await asyncio.sleep(self.options.cmd_sleep_short)
        return warnings

    def _commit_warnings(self, reply: RPCReply, warnings: list[DiagnosticWarning]) -> None:
        if reply.failed:
            raise CommitError(reply.error_message(), warnings)
        for err in reply.errors:
            warning = DiagnosticWarning.from_rpc_error(err)
            logger.warning(f"{self.device_id} commit: {warning}")
            warnings.append(warning)

    @timed("commit")
    async def commit(self, comment: str) -> list[DiagnosticWarning]:
        """Commit the candidate with `comment` as log message.

        With `commit_confirmed` set the commit is confirmed: the session
        waits `commit_confirmed_wait_percent` of the timeout, then sends a
        commit check to make it permanent.
        """
        warnings: list[DiagnosticWarning] = []
        minutes = self.options.commit_confirmed
        reply = await self._rpc(rpc_commit(comment, minutes), "commit")
        self._commit_warnings(reply, warnings)

        if minutes:
            wait = minutes * 60 * self.options.commit_confirmed_wait_percent / 100
            logger.info(f"{self.device_id}: commit confirmed, confirming in {wait:.0f}s")
            await asyncio.sleep(wait)
            reply = await self._rpc(RPC_COMMIT_CHECK, "commit check")
            self._commit_warnings(reply, warnings)
        return warnings

    async def config_clear(self) -> None:
        reply = await self._rpc(RPC_CLEAR_CANDIDATE, "delete-config")
        if reply.failed:
            raise CommandError("delete-config candidate", reply.error_message())

    async def config_unlock(self) -> None:
        reply = await self._rpc(RPC_UNLOCK_CANDIDATE, "unlock")
        if reply.failed:
            raise CommandError("unlock candidate", reply.error_message())

    async def close(self) -> None:
        """Clear any open transaction and close the transport. Idempotent."""
        if self._closed:
            return
        await super().close()
        try:
            await self.transport.close()
        except Exception as e:
            logger.warning(f"closing transport to {self.device_id} failed: {e}")
        if self.options.ssh_sleep_closed:
            await asyncio.sleep(self.options.ssh_sleep_closed)
