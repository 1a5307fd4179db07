"""Lock -> stage -> commit-or-clear state machine on top of a session.

    IDLE --lock--> LOCKED --commit--> COMMITTED --unlock--> IDLE
                     |
                     +--clear--> ABORTED --> IDLE

Used as an async context manager the transaction always ends IDLE: leaving
the block while still LOCKED (error, cancellation, or no commit) clears the
candidate and releases the lock. Clear failures are never raised; they go
to the session's side channel (log, `clear_errors`, audit, callback).
"""
import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING, Optional

from ..errors import CommitError, TransactionStateError
from .schema import DiagnosticWarning

if TYPE_CHECKING:
    from .session import BaseSession

logger = logging.getLogger(__name__)


class TransactionState(str, Enum):
    IDLE = "idle"
    LOCKED = "locked"
    COMMITTED = "committed"
    ABORTED = "aborted"


class Transaction:
    """One exclusive edit of the candidate configuration."""

    def __init__(self, session: "BaseSession", comment: str = ""):
        self.session = session
        self.comment = comment
        self.state = TransactionState.IDLE
        self.staged: list[str] = []
        self.warnings: list[DiagnosticWarning] = []
        self.clear_errors: list[Exception] = []

    @property
    def device_id(self) -> str:
        return self.session.device_id

    def _audit(self, operation: str, success: bool, error: Optional[str] = None) -> None:
        audit = self.session.audit
        if audit is not None:
            audit.log(
                operation,
                success,
                comment=self.comment,
                lines=self.staged,
                warnings=self.warnings,
                error=error,
                dry_run=self.session.dry_run,
            )

    def _require_locked(self, action: str) -> None:
        if self.state is not TransactionState.LOCKED:
            raise TransactionStateError(
                f"cannot {action} on {self.device_id}: transaction is {self.state.value}"
            )

    async def lock(self) -> None:
        """Take the exclusive candidate lock. A held lock raises LockError."""
        if self.state is not TransactionState.IDLE:
            raise TransactionStateError(
                f"cannot lock on {self.device_id}: transaction is {self.state.value}"
            )
        self.session._attach(self)
        try:
            await self.session.config_lock()
        except Exception as e:
            self.session._detach(self)
            self._audit("lock", False, str(e))
            raise
        self.state = TransactionState.LOCKED
        logger.debug(f"{self.device_id}: candidate locked")
        self._audit("lock", True)

    async def stage(self, lines: list[str]) -> None:
        """Load `lines` into the candidate. Cumulative, nothing is committed."""
        self._require_locked("stage")
        if not lines:
            return
        warnings = await self.session.config_set(list(lines))
        self.staged.extend(lines)
        self.warnings.extend(warnings)

    async def commit(self, comment: Optional[str] = None) -> list[DiagnosticWarning]:
        """Commit everything staged and release the lock.

        On CommitError the transaction stays LOCKED; the caller decides
        between fixing the candidate and clearing it.
        """
        self._require_locked("commit")
        if comment is not None:
            self.comment = comment
        try:
            warnings = await self.session.commit(self.comment)
        except CommitError as e:
            e.warnings = self.warnings + e.warnings
            self._audit("commit", False, e.message)
            raise
        self.warnings.extend(warnings)
        self.state = TransactionState.COMMITTED
        self._audit("commit", True)

        try:
            await self.session.config_unlock()
        except Exception as e:
            self.clear_errors.append(e)
            self.session.record_clear_error(e, "unlock")
        self._finish()
        return warnings

    async def clear(self) -> list[Exception]:
        """Discard staged edits and release the lock. Never raises.

        Safe in any state; only a LOCKED transaction talks to the device.
        Returns the failures it swallowed.
        """
        errors: list[Exception] = []
        if self.state is TransactionState.LOCKED:
            self.state = TransactionState.ABORTED
            for step, action in (
                ("delete-config", self.session.config_clear),
                ("unlock", self.session.config_unlock),
            ):
                try:
                    await action()
                except Exception as e:
                    errors.append(e)
                    self.session.record_clear_error(e, step)
            self.clear_errors.extend(errors)
            self._audit("clear", not errors, "; ".join(str(e) for e in errors) or None)
            logger.info(f"{self.device_id}: candidate cleared ({len(self.staged)} staged lines dropped)")
        self._finish()
        return errors

    def _finish(self) -> None:
        self.state = TransactionState.IDLE
        self.staged = []
        self.session._detach(self)

    async def __aenter__(self) -> "Transaction":
        # A transaction locked beforehand (e.g. by a lock wait loop) is adopted
        if self.state is TransactionState.IDLE:
            await self.lock()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if self.state is TransactionState.LOCKED:
            if exc is not None:
                logger.warning(f"{self.device_id}: clearing candidate after {exc!r}")
            cleanup = asyncio.ensure_future(self.clear())
            try:
                await asyncio.shield(cleanup)
            except asyncio.CancelledError:
                # Let the clear finish before the cancellation propagates
                await cleanup
                raise
        return False
