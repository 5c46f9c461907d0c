"""Remote credit ledger interfaces."""

from abc import ABC, abstractmethod

from app.schemas.wallet import LedgerProfile, SpendRecord


class RemoteLedger(ABC):
    """Source of truth for account balances.

    Write methods raise ``LedgerSyncError`` when the remote store rejects or
    fails the operation.
    """

    @abstractmethod
    async def fetch_profile(self, user_id: str) -> LedgerProfile:
        """Return the account's current balance and plan."""

    @abstractmethod
    async def deduct_credits(self, user_id: str, amount: int, spend: SpendRecord | None) -> None:
        """Atomically decrement the remote balance."""

    @abstractmethod
    async def add_credits(self, user_id: str, amount: int) -> None:
        """Atomically increment the remote balance."""

    @abstractmethod
    async def overwrite_balance(self, user_id: str, *, credits: int, monthly_credits_used: int) -> None:
        """Replace the remote balance with a locally computed value."""

    @abstractmethod
    async def update_plan(self, user_id: str, *, plan_type: str, is_pro: bool) -> None:
        """Record a plan change."""

    async def aclose(self) -> None:
        return None


__all__ = ["RemoteLedger"]
