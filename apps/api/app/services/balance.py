"""Per-session credit balance with a synchronous check-and-deduct gate."""

from __future__ import annotations

import logging

from app.core.logging_safety import safe_log_identifier
from app.schemas.wallet import LedgerProfile, SpendRecord, WalletView
from app.services.ledger_sync import LedgerSync

logger = logging.getLogger(__name__)


class BalanceStore:
    """Holds the spendable balance for one signed-in account.

    ``check_and_deduct`` and ``credit`` never await: the local balance changes
    before any network persistence is scheduled, so back-to-back spends on the
    same event loop always observe each other's deductions. The remote write
    is handed to :class:`LedgerSync` and is not awaited.
    """

    def __init__(
        self,
        *,
        user_id: str,
        balance: int = 0,
        monthly_usage: int = 0,
        unlimited: bool = False,
        is_pro: bool = False,
        plan_type: str = "creator",
        sync: LedgerSync | None = None,
    ) -> None:
        if balance < 0:
            raise ValueError("balance cannot be negative")
        self._user_id = user_id
        self._balance = balance
        self._monthly_usage = monthly_usage
        self._unlimited = unlimited
        self._is_pro = is_pro
        self._plan_type = plan_type
        self._sync = sync

    @classmethod
    def from_profile(
        cls,
        profile: LedgerProfile,
        *,
        sync: LedgerSync | None = None,
        unlimited: bool = False,
    ) -> "BalanceStore":
        return cls(
            user_id=profile.user_id,
            balance=max(0, profile.credits),
            monthly_usage=profile.monthly_credits_used,
            unlimited=unlimited or profile.is_admin,
            is_pro=profile.is_pro,
            plan_type=profile.plan_type,
            sync=sync,
        )

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def balance(self) -> int:
        return self._balance

    @property
    def unlimited(self) -> bool:
        return self._unlimited

    def check_and_deduct(self, amount: int, spend: SpendRecord | None = None) -> bool:
        if amount < 0:
            raise ValueError("amount cannot be negative")
        if self._unlimited:
            return True
        if self._balance < amount:
            logger.info(
                "balance.insufficient user_id=%s required=%s available=%s",
                safe_log_identifier(self._user_id, prefix="uid"),
                amount,
                self._balance,
            )
            return False

        self._balance -= amount
        self._monthly_usage += amount
        logger.info(
            "balance.deducted user_id=%s amount=%s balance=%s model=%s",
            safe_log_identifier(self._user_id, prefix="uid"),
            amount,
            self._balance,
            spend.model if spend else "unknown",
        )
        if self._sync is not None and amount > 0:
            self._sync.schedule_deduction(
                user_id=self._user_id,
                amount=amount,
                balance_after=self._balance,
                monthly_usage_after=self._monthly_usage,
                spend=spend,
            )
        return True

    def credit(self, amount: int, *, reason: str) -> None:
        if amount < 0:
            raise ValueError("amount cannot be negative")
        if self._unlimited or amount == 0:
            return

        self._balance += amount
        if reason == "refund":
            self._monthly_usage = max(0, self._monthly_usage - amount)
        logger.info(
            "balance.credited user_id=%s amount=%s balance=%s reason=%s",
            safe_log_identifier(self._user_id, prefix="uid"),
            amount,
            self._balance,
            reason,
        )
        if self._sync is not None:
            self._sync.schedule_credit(
                user_id=self._user_id,
                amount=amount,
                balance_after=self._balance,
                monthly_usage_after=self._monthly_usage,
            )

    def set_unlimited(self) -> None:
        self._unlimited = True
        self._is_pro = True

    def set_balance(self, balance: int) -> None:
        if balance < 0:
            raise ValueError("balance cannot be negative")
        self._balance = balance

    def set_plan(self, *, plan_type: str, is_pro: bool) -> None:
        self._plan_type = plan_type
        self._is_pro = is_pro

    def snapshot(self, *, upgrade_prompt: bool = False) -> WalletView:
        return WalletView(
            balance=self._balance,
            unlimited=self._unlimited,
            monthly_usage=self._monthly_usage,
            is_pro=self._is_pro,
            plan_type=self._plan_type,
            upgrade_prompt=upgrade_prompt,
        )


__all__ = ["BalanceStore"]
