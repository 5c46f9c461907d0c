"""Signed-in session and wallet service layer."""

from __future__ import annotations

import logging

from app.adapters.ledger.base import RemoteLedger
from app.core.clock import utc_now
from app.core.logging_safety import safe_log_identifier, safe_log_reason
from app.core.pricing import plan_grant
from app.errors import ApiError, InsufficientBalanceError, LedgerSyncError
from app.repositories.memory import InMemoryStore, UserSession
from app.schemas.auth import AuthPrincipal
from app.schemas.storyboard import PlanTier
from app.schemas.wallet import WalletView
from app.services.balance import BalanceStore
from app.services.ledger_sync import LedgerSync
from app.services.orchestrator import InsufficientFundsSignal

logger = logging.getLogger(__name__)

_ADMIN_ROLE = "admin"


class SessionService:
    def __init__(self, store: InMemoryStore, ledger: RemoteLedger, sync: LedgerSync) -> None:
        self._store = store
        self._ledger = ledger
        self._sync = sync

    async def establish(self, principal: AuthPrincipal) -> UserSession:
        """Return the user's session, loading the remote profile on first use."""
        existing = self._store.get_session(principal.user_id)
        if existing is not None:
            return existing

        safe_user_id = safe_log_identifier(principal.user_id, prefix="uid")
        try:
            profile = await self._ledger.fetch_profile(principal.user_id)
        except LedgerSyncError as exc:
            logger.error("session.profile_failed user_id=%s reason=%s", safe_user_id, safe_log_reason(exc))
            raise ApiError(
                status_code=503,
                code="LEDGER_UNAVAILABLE",
                message="Account balance is temporarily unavailable.",
            ) from exc

        balance = BalanceStore.from_profile(
            profile,
            sync=self._sync,
            unlimited=principal.role == _ADMIN_ROLE,
        )
        # Another request may have finished loading while this one awaited.
        session = self._store.put_session(
            principal.user_id,
            UserSession(balance=balance, established_at=utc_now()),
        )
        if session.balance is balance:
            logger.info(
                "session.established user_id=%s balance=%s unlimited=%s",
                safe_user_id,
                balance.balance,
                balance.unlimited,
            )
        return session

    async def logout(self, user_id: str) -> None:
        for storyboard in self._store.list_storyboards_for_owner(user_id):
            runtime = self._store.get_runtime(storyboard.id)
            if runtime is not None:
                await runtime.poller.stop()
        self._store.drop_session(user_id)
        logger.info("session.closed user_id=%s", safe_log_identifier(user_id, prefix="uid"))

    def wallet(self, session: UserSession) -> WalletView:
        return session.balance.snapshot(upgrade_prompt=session.upgrade_prompt)

    def purchase(self, session: UserSession, *, credits: int) -> WalletView:
        session.balance.credit(credits, reason="purchase")
        session.upgrade_prompt = False
        return self.wallet(session)

    async def upgrade(self, session: UserSession, *, tier: PlanTier) -> WalletView:
        balance = session.balance
        balance.credit(plan_grant(tier), reason="upgrade")
        balance.set_plan(plan_type=tier.value, is_pro=True)
        session.upgrade_prompt = False
        try:
            await self._ledger.update_plan(balance.user_id, plan_type=tier.value, is_pro=True)
        except LedgerSyncError as exc:
            logger.error(
                "session.plan_sync_failed user_id=%s tier=%s reason=%s",
                safe_log_identifier(balance.user_id, prefix="uid"),
                tier.value,
                safe_log_reason(exc),
            )
        return self.wallet(session)


def upgrade_signal(session: UserSession) -> InsufficientFundsSignal:
    """Raise the session's upgrade prompt when a paid step cannot be afforded."""

    def signal(exc: InsufficientBalanceError) -> None:
        session.upgrade_prompt = True
        logger.info(
            "session.upgrade_prompted user_id=%s required=%s available=%s",
            safe_log_identifier(session.balance.user_id, prefix="uid"),
            exc.required,
            exc.available,
        )

    return signal


__all__ = ["SessionService", "upgrade_signal"]
