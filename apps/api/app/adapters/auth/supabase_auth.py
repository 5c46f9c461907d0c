"""Supabase Auth access token verifier adapter."""

from __future__ import annotations

import httpx

from app.adapters.auth.base import AuthVerificationError, TokenVerifier
from app.schemas.auth import AuthPrincipal


class SupabaseTokenVerifier(TokenVerifier):
    """Resolves access tokens through the Supabase Auth user endpoint."""

    def __init__(
        self,
        *,
        url: str | None,
        api_key: str | None,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = f"{url.rstrip('/')}/auth/v1/user" if url else None
        self._api_key = api_key
        self._timeout = timeout_seconds
        self._transport = transport

    async def verify_token(self, token: str) -> AuthPrincipal:
        if self._url is None or not self._api_key:
            raise AuthVerificationError("Supabase auth verifier is not configured")

        headers = {"apikey": self._api_key, "Authorization": f"Bearer {token}"}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(self._url, headers=headers)
        except httpx.HTTPError as exc:
            raise AuthVerificationError("Auth provider is unavailable") from exc

        if response.status_code in (401, 403):
            raise AuthVerificationError("Invalid bearer token")
        if response.status_code >= 400:
            raise AuthVerificationError("Auth provider is unavailable")

        data = response.json()
        user_id = str(data.get("id") or "").strip()
        if not user_id:
            raise AuthVerificationError("Bearer token missing user identity")

        app_metadata = data.get("app_metadata") or {}
        role = str(app_metadata.get("role") or "member").strip()
        return AuthPrincipal(user_id=user_id, role=role or "member")


__all__ = ["SupabaseTokenVerifier"]
