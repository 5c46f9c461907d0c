"""Best-effort reconciliation of local balance changes with the remote ledger."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Coroutine

from app.adapters.ledger.base import RemoteLedger
from app.core.logging_safety import safe_log_identifier, safe_log_reason
from app.errors import LedgerSyncError
from app.schemas.wallet import SpendRecord

logger = logging.getLogger(__name__)


class LedgerSync:
    """Runs remote ledger writes as fire-and-forget tasks.

    The atomic RPC is tried first; when it fails the remote balance is
    overwritten with the locally computed value. That overwrite can race with
    other sessions of the same account. Failures are logged and never undo the
    local change.
    """

    def __init__(self, ledger: RemoteLedger) -> None:
        self._ledger = ledger
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def schedule_deduction(
        self,
        *,
        user_id: str,
        amount: int,
        balance_after: int,
        monthly_usage_after: int,
        spend: SpendRecord | None = None,
    ) -> asyncio.Task[None] | None:
        return self._schedule(
            self._sync(
                lambda: self._ledger.deduct_credits(user_id, amount, spend),
                operation="deduct",
                user_id=user_id,
                amount=amount,
                balance_after=balance_after,
                monthly_usage_after=monthly_usage_after,
            ),
            operation="deduct",
            user_id=user_id,
        )

    def schedule_credit(
        self,
        *,
        user_id: str,
        amount: int,
        balance_after: int,
        monthly_usage_after: int,
    ) -> asyncio.Task[None] | None:
        return self._schedule(
            self._sync(
                lambda: self._ledger.add_credits(user_id, amount),
                operation="credit",
                user_id=user_id,
                amount=amount,
                balance_after=balance_after,
                monthly_usage_after=monthly_usage_after,
            ),
            operation="credit",
            user_id=user_id,
        )

    async def drain(self) -> None:
        """Wait for every scheduled write to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _schedule(self, coro: Coroutine[Any, Any, None], *, operation: str, user_id: str) -> asyncio.Task[None] | None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.warning(
                "ledger.sync_skipped operation=%s user_id=%s reason=no_event_loop",
                operation,
                safe_log_identifier(user_id, prefix="uid"),
            )
            return None

        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("ledger.sync_crashed reason=%s", type(exc).__name__, exc_info=exc)

    async def _sync(
        self,
        primary: Callable[[], Awaitable[None]],
        *,
        operation: str,
        user_id: str,
        amount: int,
        balance_after: int,
        monthly_usage_after: int,
    ) -> None:
        safe_user_id = safe_log_identifier(user_id, prefix="uid")
        try:
            await primary()
        except LedgerSyncError as exc:
            logger.warning(
                "ledger.rpc_failed operation=%s user_id=%s amount=%s reason=%s fallback=overwrite",
                operation,
                safe_user_id,
                amount,
                safe_log_reason(exc),
            )
        else:
            logger.info("ledger.synced operation=%s user_id=%s amount=%s", operation, safe_user_id, amount)
            return

        try:
            await self._ledger.overwrite_balance(
                user_id,
                credits=balance_after,
                monthly_credits_used=monthly_usage_after,
            )
        except LedgerSyncError as exc:
            logger.error(
                "ledger.sync_failed operation=%s user_id=%s amount=%s reason=%s",
                operation,
                safe_user_id,
                amount,
                safe_log_reason(exc),
            )
            return

        logger.info(
            "ledger.overwritten operation=%s user_id=%s balance=%s",
            operation,
            safe_user_id,
            balance_after,
        )


__all__ = ["LedgerSync"]
