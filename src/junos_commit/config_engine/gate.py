"""Serialization gate around every read-modify-write sequence.

The device lock is coarse and refuses instead of queuing, so concurrent
callers are funnelled through one critical section before they reach it.
The gate is a plain object handed to each ConfigEngine: share one instance
to serialize a whole process, build separate ones to keep tests apart.
Waiters are not served in any particular order.
"""
import asyncio
import time
from contextlib import asynccontextmanager
from typing import Optional

from ..utils.logging_config import perf_logger


class SerializationGate:
    """Process-wide critical section for transactions and consistent reads."""

    def __init__(self, name: str = "global"):
        self.name = name
        self._lock = asyncio.Lock()
        self._holder: Optional[str] = None
        self._acquired_at = 0.0

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @property
    def holder(self) -> Optional[str]:
        return self._holder

    async def acquire(self, holder: str = "") -> None:
        start = time.perf_counter()
        await self._lock.acquire()
        self._holder = holder
        self._acquired_at = time.perf_counter()
        waited = (self._acquired_at - start) * 1000
        perf_logger.info(f"{'gate wait':20s} | {self.name:15s} | {waited:8.2f}ms | {holder}")

    def release(self) -> None:
        held = (time.perf_counter() - self._acquired_at) * 1000
        holder = self._holder
        self._holder = None
        self._lock.release()
        perf_logger.info(f"{'gate hold':20s} | {self.name:15s} | {held:8.2f}ms | {holder}")

    @asynccontextmanager
    async def hold(self, holder: str = ""):
        """Hold the gate for the body of an `async with` block."""
        await self.acquire(holder)
        try:
            yield self
        finally:
            self.release()
