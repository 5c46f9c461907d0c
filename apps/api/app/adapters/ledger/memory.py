"""In-memory ledger used for local development and tests."""

from __future__ import annotations

from dataclasses import dataclass, field

from app.adapters.ledger.base import RemoteLedger
from app.errors import LedgerSyncError
from app.schemas.wallet import LedgerProfile, SpendRecord


@dataclass(slots=True)
class LedgerCall:
    method: str
    user_id: str
    amount: int | None = None
    spend: SpendRecord | None = None


@dataclass(slots=True)
class InMemoryLedger(RemoteLedger):
    """Deterministic ledger with injectable failures.

    ``rpc_failure_message`` makes the atomic RPCs fail, and
    ``overwrite_failure_message`` makes the direct-overwrite fallback fail.
    """

    default_credits: int = 50
    profiles: dict[str, LedgerProfile] = field(default_factory=dict)
    calls: list[LedgerCall] = field(default_factory=list)
    rpc_failure_message: str | None = None
    overwrite_failure_message: str | None = None

    def seed(self, profile: LedgerProfile) -> None:
        self.profiles[profile.user_id] = profile

    async def fetch_profile(self, user_id: str) -> LedgerProfile:
        self.calls.append(LedgerCall(method="fetch_profile", user_id=user_id))
        profile = self.profiles.get(user_id)
        if profile is None:
            profile = LedgerProfile(user_id=user_id, credits=self.default_credits)
            self.profiles[user_id] = profile
        return profile.model_copy()

    async def deduct_credits(self, user_id: str, amount: int, spend: SpendRecord | None) -> None:
        self.calls.append(LedgerCall(method="deduct_credits", user_id=user_id, amount=amount, spend=spend))
        if self.rpc_failure_message is not None:
            raise LedgerSyncError(self.rpc_failure_message)
        profile = self._require(user_id)
        if profile.credits < amount:
            raise LedgerSyncError("Remote balance is lower than the deduction")
        profile.credits -= amount
        profile.monthly_credits_used += amount

    async def add_credits(self, user_id: str, amount: int) -> None:
        self.calls.append(LedgerCall(method="add_credits", user_id=user_id, amount=amount))
        if self.rpc_failure_message is not None:
            raise LedgerSyncError(self.rpc_failure_message)
        self._require(user_id).credits += amount

    async def overwrite_balance(self, user_id: str, *, credits: int, monthly_credits_used: int) -> None:
        self.calls.append(LedgerCall(method="overwrite_balance", user_id=user_id, amount=credits))
        if self.overwrite_failure_message is not None:
            raise LedgerSyncError(self.overwrite_failure_message)
        profile = self._require(user_id)
        profile.credits = credits
        profile.monthly_credits_used = monthly_credits_used

    async def update_plan(self, user_id: str, *, plan_type: str, is_pro: bool) -> None:
        self.calls.append(LedgerCall(method="update_plan", user_id=user_id))
        profile = self._require(user_id)
        profile.plan_type = plan_type
        profile.is_pro = is_pro

    def _require(self, user_id: str) -> LedgerProfile:
        profile = self.profiles.get(user_id)
        if profile is None:
            raise LedgerSyncError("Profile not found")
        return profile


__all__ = ["InMemoryLedger", "LedgerCall"]
