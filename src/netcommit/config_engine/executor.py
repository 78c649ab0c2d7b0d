"""Transaction executor.

A Transaction owns the candidate lock of one session for the duration of an
``async with`` block: lock on entry, apply and commit inside, release on exit.
Release runs whatever happened inside the block, including cancellation, and
its failures are reported as warnings instead of masking the original error.
"""
import asyncio
import logging
from typing import TYPE_CHECKING, Optional

from ..errors import CommitFailed
from .schema import Statement, TransactionState

if TYPE_CHECKING:
    from ..session.base import Session

logger = logging.getLogger(__name__)


class TransactionStateError(RuntimeError):
    """A transaction step was called out of order."""
    pass


class Transaction:
    """Lock -> apply -> commit -> unlock against one session.

    State machine::

        IDLE -> LOCKED -> APPLIED -> COMMITTED -> IDLE
                LOCKED -> IDLE, APPLIED -> IDLE (on failure)

    No step is retried here; retry policy belongs to the caller.
    """

    def __init__(self, session: "Session", confirmed: Optional[bool] = None):
        """
        Args:
            session: Open session; not shared with any other transaction
            confirmed: Use ``commit confirmed``; None follows the session settings
        """
        self.session = session
        self.confirmed = confirmed
        self.state = TransactionState.IDLE
        self.statements: list[Statement] = []
        self.commit_warnings: list[str] = []
        self.cleanup_warnings: list[str] = []

    @property
    def warnings(self) -> list[str]:
        return self.commit_warnings + self.cleanup_warnings

    def _require(self, *states: TransactionState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise TransactionStateError(f"transaction is {self.state.value}, expected {allowed}")

    async def __aenter__(self) -> "Transaction":
        self._require(TransactionState.IDLE)
        await self.session.lock()
        self.state = TransactionState.LOCKED
        logger.debug(f"Transaction started on {self.session.device_id}")
        return self

    async def apply(self, statements: list[Statement]) -> None:
        """Send a statement batch to the candidate configuration."""
        self._require(TransactionState.LOCKED, TransactionState.APPLIED)
        await self.session.apply_lines(statements)
        self.statements.extend(statements)
        self.state = TransactionState.APPLIED

    async def load(self, action: str, fmt: str, blob: str) -> None:
        """Load a raw configuration blob into the candidate configuration."""
        self._require(TransactionState.LOCKED, TransactionState.APPLIED)
        await self.session.load(action, fmt, blob)
        self.state = TransactionState.APPLIED

    async def commit(self, message: str) -> list[str]:
        """Activate the candidate configuration.

        Returns:
            Warnings of this commit. All warnings are also kept on
            commit_warnings, including those carried by a CommitFailed.
        """
        self._require(TransactionState.LOCKED, TransactionState.APPLIED)
        try:
            warnings = await self.session.commit_with(message, self.confirmed)
        except CommitFailed as e:
            self.commit_warnings.extend(e.warnings)
            raise
        self.commit_warnings.extend(warnings)
        self.state = TransactionState.COMMITTED
        logger.info(
            f"Committed {len(self.statements)} statements on {self.session.device_id}"
            + (f" with {len(warnings)} warnings" if warnings else "")
        )
        return warnings

    async def _release(self, state: TransactionState) -> list[str]:
        try:
            if state == TransactionState.COMMITTED:
                return await self.session.unlock()
            # Uncommitted edits are discarded before the lock is released
            return await self.session.clear()
        except Exception as e:
            logger.warning(f"Releasing candidate lock on {self.session.device_id} failed: {e}")
            return [f"releasing candidate lock: {e}"]

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        if self.state == TransactionState.IDLE:
            return False
        if exc_type is not None and self.state != TransactionState.COMMITTED:
            logger.warning(
                f"Transaction on {self.session.device_id} aborted in state "
                f"{self.state.value}: {exc_val!r}"
            )

        release = asyncio.ensure_future(self._release(self.state))
        try:
            warnings = await asyncio.shield(release)
        finally:
            self.state = TransactionState.IDLE
        for warning in warnings:
            logger.warning(f"{self.session.device_id}: {warning}")
        self.cleanup_warnings.extend(warnings)
        return False
