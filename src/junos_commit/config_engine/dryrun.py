"""Dry-run session: staged lines go to a sink instead of a device.

The sink is a list in memory, or the file named by
`fake_create_with_setfile`, appended to with one set line per line so the
result can be loaded as a standalone configuration script. Reads always
see EMPTY_OUTPUT, so create flows always proceed.
"""
import asyncio
import logging
import os
from typing import Optional, Union

from ..config.schema import EngineOptions
from ..devices.base import DeviceFacts
from ..utils.audit_log import AuditTrail
from .schema import EMPTY_OUTPUT, DiagnosticWarning
from .session import BaseSession, ClearErrorCallback

logger = logging.getLogger(__name__)


class DryRunSession(BaseSession):
    """Same surface as Session, without a transport."""

    dry_run = True

    def __init__(
        self,
        sink: Union[list[str], str, None] = None,
        facts: Optional[DeviceFacts] = None,
        options: Optional[EngineOptions] = None,
        device_id: str = "dry-run",
        audit: Optional[AuditTrail] = None,
        on_clear_error: Optional[ClearErrorCallback] = None,
    ):
        super().__init__(facts, options, audit, on_clear_error)
        if sink is None:
            sink = self.options.fake_create_with_setfile or []
        self.sink = sink
        self._device_id = device_id

    @property
    def device_id(self) -> str:
        return self._device_id

    @property
    def lines(self) -> list[str]:
        """Everything written to the sink so far."""
        if isinstance(self.sink, list):
            return list(self.sink)
        if not os.path.exists(self.sink):
            return []
        with open(self.sink, "r", encoding="utf-8") as f:
            return [line for line in f.read().splitlines() if line]

    def _append_file(self, lines: list[str]) -> None:
        fd = os.open(self.sink, os.O_WRONLY | os.O_CREAT | os.O_APPEND, self.options.file_mode)
        with os.fdopen(fd, "a", encoding="utf-8") as f:
            for line in lines:
                f.write(line + "\n")

    async def command(self, text: str) -> str:
        self._ensure_open()
        logger.debug(f"{self.device_id}: dry-run command skipped: {text}")
        return EMPTY_OUTPUT

    async def show_config(self, path: str, relative: bool = True) -> str:
        return await self.command(f"show configuration {path}")

    async def config_lock(self) -> None:
        self._ensure_open()

    async def config_set(self, lines: list[str]) -> list[DiagnosticWarning]:
        self._ensure_open()
        if isinstance(self.sink, list):
            self.sink.extend(lines)
        else:
            loop = asyncio.get_event_loop()
            await loop.run_in_executor(None, self._append_file, list(lines))
        logger.info(f"{self.device_id}: {len(lines)} lines written to dry-run sink")
        return []

    async def commit(self, comment: str) -> list[DiagnosticWarning]:
        self._ensure_open()
        return []

    async def config_clear(self) -> None:
        pass

    async def config_unlock(self) -> None:
        pass
