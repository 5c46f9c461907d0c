"""Wallet and ledger schemas."""

from pydantic import BaseModel, Field

from app.schemas.storyboard import PlanTier


class SpendRecord(BaseModel):
    """Advisory audit details attached to a deduction."""

    amount: int
    model: str
    base_cost: int
    multiplier: float = 1.0


class LedgerProfile(BaseModel):
    user_id: str
    credits: int = 0
    monthly_credits_used: int = 0
    is_admin: bool = False
    is_pro: bool = False
    plan_type: str = "creator"


class WalletView(BaseModel):
    balance: int
    unlimited: bool
    monthly_usage: int
    is_pro: bool
    plan_type: str
    upgrade_prompt: bool = False


class PurchaseCreditsRequest(BaseModel):
    credits: int = Field(gt=0)


class UpgradePlanRequest(BaseModel):
    tier: PlanTier
