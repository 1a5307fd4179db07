"""ConfigEngine - create, read, update and delete resources on one device.

Every operation follows the same sequence:

1. Open a session (or a dry-run session)
2. Check the device supports the resource (live sessions only)
3. Enter the serialization gate
4. Lock the candidate, waiting `cmd_sleep_lock` between attempts for up
   to `lock_timeout` seconds
5. Check existence, stage lines, commit, check again
6. Leave the gate, close the session

Any error after the lock clears the candidate before it is raised, so a
failed operation leaves the device at its last committed state.
"""
import asyncio
import logging
from collections import deque
from typing import Any, Awaitable, Callable, Optional, TypeVar

from ..config.schema import EngineOptions
from ..devices import create_transport
from ..devices.base import DeviceConfig, Transport
from ..errors import LockError, ResourceExistsError, ResourceNotFoundError
from ..utils.audit_log import AuditTrail
from ..utils.connection import retry_fixed
from ..utils.logging_config import timed_section
from .capabilities import Feature, require
from .dryrun import DryRunSession
from .gate import SerializationGate
from .generator import build_lines
from .parser import has_config, parse_lines
from .schema import ConfigResource, OperationResult
from .session import BaseSession, Session
from .transaction import Transaction

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=ConfigResource)

CLEAR_ERRORS_KEPT = 100

TransportFactory = Callable[[DeviceConfig, EngineOptions], Transport]


class ConfigEngine:
    """Resource operations for one device.

    The gate is required: pass the same SerializationGate to every engine
    of a process so their transactions never overlap. `clear_errors` keeps
    the most recent clear failures across operations.

    Usage:
        engine = ConfigEngine(device, gate, options)
        result = await engine.create(Vlan(name="blue", vlan_id="100"))
        vlan = await engine.read(Vlan, name="blue")
    """

    def __init__(
        self,
        device: DeviceConfig,
        gate: SerializationGate,
        options: Optional[EngineOptions] = None,
        transport_factory: Optional[TransportFactory] = None,
        audit: Optional[AuditTrail] = None,
    ):
        if gate is None:
            raise TypeError("ConfigEngine needs the SerializationGate shared by every engine")
        self.device = device
        self.options = options or EngineOptions()
        self.gate = gate
        self._transport_factory = transport_factory or create_transport
        self.audit = audit or AuditTrail(device.name)
        self.clear_errors: deque[Exception] = deque(maxlen=CLEAR_ERRORS_KEPT)

    @property
    def device_id(self) -> str:
        return self.device.name

    def _on_clear_error(self, error: Exception) -> None:
        self.clear_errors.append(error)

    async def open_session(self, dry_run: bool = False) -> BaseSession:
        if dry_run:
            return DryRunSession(
                options=self.options,
                device_id=self.device_id,
                audit=self.audit,
                on_clear_error=self._on_clear_error,
            )
        transport = self._transport_factory(self.device, self.options)
        return await Session.open(
            self.device,
            self.options,
            transport=transport,
            audit=self.audit,
            on_clear_error=self._on_clear_error,
        )

    def _check_capabilities(self, session: BaseSession, resource: ConfigResource) -> None:
        if session.dry_run:
            return
        if resource.required_feature is not None:
            require(resource.required_feature, session.facts)
        if self.options.commit_confirmed:
            require(Feature.COMMIT_CONFIRMED, session.facts)

    async def _lock(self, session: BaseSession, comment: str) -> Transaction:
        """Lock the candidate, retrying while another session holds it."""
        transaction = session.transaction(comment)
        await retry_fixed(
            transaction.lock,
            (LockError,),
            interval=self.options.cmd_sleep_lock,
            timeout=self.options.lock_timeout,
        )
        return transaction

    async def _exists(self, session: BaseSession, resource: ConfigResource) -> bool:
        output = await session.show_config(resource.config_path(), relative=False)
        return has_config(output)

    async def _run(
        self,
        operation: str,
        resource: ConfigResource,
        dry_run: bool,
        timeout: Optional[float],
        body: Callable[[BaseSession, OperationResult], Awaitable[None]],
    ) -> OperationResult:
        comment = f"{operation} resource {resource.resource_type}"
        result = OperationResult(
            operation=operation,
            resource_type=resource.resource_type,
            dry_run=dry_run,
        )

        async def sequence() -> None:
            session = await self.open_session(dry_run)
            async with session:
                self._check_capabilities(session, resource)
                async with self.gate.hold(f"{self.device_id} {comment}"):
                    await body(session, result)
            result.clear_errors = list(session.clear_errors)

        async with timed_section(operation, device_id=self.device_id, resource=resource.resource_type):
            try:
                await asyncio.wait_for(sequence(), timeout)
            except Exception as e:
                logger.error(f"{comment} on {self.device_id} failed: {e}")
                self.audit.log(operation, False, comment, error=str(e), dry_run=dry_run)
                raise

        self.audit.log(
            operation,
            True,
            comment,
            lines=result.lines,
            warnings=result.warnings,
            dry_run=dry_run,
        )
        logger.info(f"{comment} on {self.device_id}: {len(result.lines)} lines committed")
        return result

    async def create(self, resource: ConfigResource, timeout: Optional[float] = None) -> OperationResult:
        """Create `resource`.

        Raises:
            ResourceExistsError: Already configured on the device
            ResourceNotFoundError: Missing after a successful commit
        """
        comment = f"create resource {resource.resource_type}"

        async def body(session: BaseSession, result: OperationResult) -> None:
            transaction = await self._lock(session, comment)
            async with transaction:
                if await self._exists(session, resource):
                    raise ResourceExistsError(
                        f"{resource.resource_type} {resource.config_path()!r} already exists"
                    )
                result.lines = build_lines(resource)
                await transaction.stage(result.lines)
                result.warnings = await transaction.commit()
            if not session.dry_run and not await self._exists(session, resource):
                raise ResourceNotFoundError(
                    f"{resource.resource_type} {resource.config_path()!r} not exists "
                    "after commit => check your config"
                )

        return await self._run("create", resource, self.options.dry_run, timeout, body)

    async def update(
        self,
        current: ConfigResource,
        desired: ConfigResource,
        timeout: Optional[float] = None,
    ) -> OperationResult:
        """Replace `current` with `desired` in one commit."""
        if type(current) is not type(desired):
            raise TypeError(
                f"cannot update {type(current).__name__} into {type(desired).__name__}"
            )
        comment = f"update resource {desired.resource_type}"
        dry_run = self.options.dry_run and self.options.fake_update_also

        async def body(session: BaseSession, result: OperationResult) -> None:
            transaction = await self._lock(session, comment)
            async with transaction:
                result.lines = current.delete_lines() + build_lines(desired)
                await transaction.stage(result.lines)
                result.warnings = await transaction.commit()

        return await self._run("update", desired, dry_run, timeout, body)

    async def delete(self, resource: ConfigResource, timeout: Optional[float] = None) -> OperationResult:
        comment = f"delete resource {resource.resource_type}"
        dry_run = self.options.dry_run and self.options.fake_delete_also

        async def body(session: BaseSession, result: OperationResult) -> None:
            transaction = await self._lock(session, comment)
            async with transaction:
                result.lines = resource.delete_lines()
                await transaction.stage(result.lines)
                result.warnings = await transaction.commit()

        return await self._run("delete", resource, dry_run, timeout, body)

    async def read(self, cls: type[R], timeout: Optional[float] = None, **identity: Any) -> Optional[R]:
        """Read a resource by its key fields. None if not configured.

        Raises:
            DecodeError: The device output holds a value of the wrong type
        """
        target = cls(**identity)

        async def sequence() -> str:
            session = await self.open_session()
            async with session:
                async with self.gate.hold(f"{self.device_id} read {target.resource_type}"):
                    return await session.show_config(target.config_path(), relative=False)

        async with timed_section("read", device_id=self.device_id, resource=target.resource_type):
            output = await asyncio.wait_for(sequence(), timeout)

        if not has_config(output):
            return None
        return parse_lines(output, cls, path=target.config_path(), **identity)

    async def exists(self, resource: ConfigResource, timeout: Optional[float] = None) -> bool:
        async def sequence() -> bool:
            session = await self.open_session()
            async with session:
                async with self.gate.hold(f"{self.device_id} exists {resource.resource_type}"):
                    return await self._exists(session, resource)

        return await asyncio.wait_for(sequence(), timeout)
