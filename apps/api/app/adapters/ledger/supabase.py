"""Supabase (PostgREST) ledger adapter."""

from __future__ import annotations

from typing import Any

import httpx

from app.adapters.ledger.base import RemoteLedger
from app.errors import LedgerSyncError
from app.schemas.wallet import LedgerProfile, SpendRecord


class SupabaseLedger(RemoteLedger):
    """Reads and writes the ``profiles`` table with the service role key.

    Atomic updates go through the ``deduct_credits`` and ``add_credits``
    database functions defined in ``supabase/rpc.sql``.
    """

    def __init__(
        self,
        *,
        url: str | None,
        service_key: str | None,
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not url or not service_key:
            raise ValueError("Supabase ledger requires url and service key")
        self._client = httpx.AsyncClient(
            base_url=f"{url.rstrip('/')}/rest/v1",
            headers={
                "apikey": service_key,
                "Authorization": f"Bearer {service_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout_seconds,
            transport=transport,
        )

    async def fetch_profile(self, user_id: str) -> LedgerProfile:
        response = await self._request(
            "GET",
            "/profiles",
            params={"id": f"eq.{user_id}", "select": "*"},
            headers={"Accept": "application/vnd.pgrst.object+json"},
        )
        try:
            data = response.json()
            return LedgerProfile(
                user_id=str(data.get("id") or user_id),
                credits=int(data.get("credits") or 0),
                monthly_credits_used=int(data.get("monthly_credits_used") or 0),
                is_admin=bool(data.get("is_admin")),
                is_pro=bool(data.get("is_pro")),
                plan_type=str(data.get("plan_type") or "creator"),
            )
        except (AttributeError, TypeError, ValueError) as exc:
            raise LedgerSyncError(f"Malformed profile row: {type(exc).__name__}") from exc

    async def deduct_credits(self, user_id: str, amount: int, spend: SpendRecord | None) -> None:
        response = await self._request(
            "POST",
            "/rpc/deduct_credits",
            json={
                "target_user": user_id,
                "amount_to_deduct": amount,
                "model_used": spend.model if spend else "unknown",
                "base_cost": spend.base_cost if spend else 0,
                "multiplier": spend.multiplier if spend else 1,
            },
        )
        if response.json() is False:
            raise LedgerSyncError("deduct_credits rejected the deduction")

    async def add_credits(self, user_id: str, amount: int) -> None:
        await self._request(
            "POST",
            "/rpc/add_credits",
            json={"target_user": user_id, "amount_to_add": amount},
        )

    async def overwrite_balance(self, user_id: str, *, credits: int, monthly_credits_used: int) -> None:
        await self._request(
            "PATCH",
            "/profiles",
            params={"id": f"eq.{user_id}"},
            json={"credits": credits, "monthly_credits_used": monthly_credits_used},
        )

    async def update_plan(self, user_id: str, *, plan_type: str, is_pro: bool) -> None:
        await self._request(
            "PATCH",
            "/profiles",
            params={"id": f"eq.{user_id}"},
            json={"plan_type": plan_type, "is_pro": is_pro},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise LedgerSyncError(f"{method} {path} failed: {type(exc).__name__}") from exc
        if response.status_code >= 400:
            raise LedgerSyncError(f"{method} {path} returned HTTP {response.status_code}")
        return response


__all__ = ["SupabaseLedger"]
