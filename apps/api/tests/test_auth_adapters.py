"""Authentication dependency and adapter tests."""

from __future__ import annotations

import os
import unittest

from fastapi.testclient import TestClient
import httpx

from app.adapters.auth.base import AuthVerificationError
from app.adapters.auth.mock_auth import MockTokenVerifier
from app.adapters.auth.supabase_auth import SupabaseTokenVerifier
from app.core.config import Settings, get_settings
from app.main import create_app
from app.routes.dependencies import get_token_verifier


class _SettingsEnvCase(unittest.TestCase):
    _env_keys = (
        "FRAMECAST_AUTH_PROVIDER",
        "FRAMECAST_LEDGER_PROVIDER",
        "FRAMECAST_GENERATION_PROVIDER",
    )

    def setUp(self) -> None:
        self._old_env = {k: os.environ.get(k) for k in self._env_keys}
        os.environ["FRAMECAST_AUTH_PROVIDER"] = "mock"
        os.environ["FRAMECAST_LEDGER_PROVIDER"] = "memory"
        os.environ["FRAMECAST_GENERATION_PROVIDER"] = "mock"
        get_settings.cache_clear()

    def tearDown(self) -> None:
        for key, value in self._old_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value
        get_settings.cache_clear()


class AuthApiTests(_SettingsEnvCase):
    def test_missing_or_invalid_bearer_is_rejected(self) -> None:
        with TestClient(create_app()) as client:
            missing = client.get("/api/v1/wallet")
            invalid = client.get("/api/v1/wallet", headers={"Authorization": "Bearer nope"})

        for response in (missing, invalid):
            with self.subTest(status=response.status_code):
                self.assertEqual(response.status_code, 401)
                self.assertEqual(response.json()["code"], "UNAUTHORIZED")

    def test_health_needs_no_token(self) -> None:
        with TestClient(create_app()) as client:
            response = client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_verifier_follows_configuration(self) -> None:
        self.assertIsInstance(get_token_verifier(Settings(auth_provider="mock")), MockTokenVerifier)
        self.assertIsInstance(
            get_token_verifier(Settings(auth_provider="supabase", supabase_url="https://x.supabase.co")),
            SupabaseTokenVerifier,
        )


class MockTokenVerifierTests(unittest.IsolatedAsyncioTestCase):
    async def test_parses_user_and_role(self) -> None:
        verifier = MockTokenVerifier()

        member = await verifier.verify_token("test:user-a")
        admin = await verifier.verify_token("test:ops:admin")

        self.assertEqual((member.user_id, member.role), ("user-a", "member"))
        self.assertEqual((admin.user_id, admin.role), ("ops", "admin"))

    async def test_rejects_malformed_tokens(self) -> None:
        verifier = MockTokenVerifier()
        for token in ("user-a", "test:", "test:user:", "prod:user-a"):
            with self.subTest(token=token):
                with self.assertRaises(AuthVerificationError):
                    await verifier.verify_token(token)


class SupabaseTokenVerifierTests(unittest.IsolatedAsyncioTestCase):
    async def test_resolves_user_from_auth_endpoint(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "uuid-1", "app_metadata": {"role": "admin"}})

        verifier = SupabaseTokenVerifier(
            url="https://project.supabase.co/",
            api_key="anon-key",
            transport=httpx.MockTransport(handler),
        )
        principal = await verifier.verify_token("jwt-token")

        self.assertEqual(principal.user_id, "uuid-1")
        self.assertEqual(principal.role, "admin")
        self.assertEqual(str(seen[0].url), "https://project.supabase.co/auth/v1/user")
        self.assertEqual(seen[0].headers["Authorization"], "Bearer jwt-token")
        self.assertEqual(seen[0].headers["apikey"], "anon-key")

    async def test_rejected_token_raises(self) -> None:
        verifier = SupabaseTokenVerifier(
            url="https://project.supabase.co",
            api_key="anon-key",
            transport=httpx.MockTransport(lambda request: httpx.Response(401, json={"msg": "bad jwt"})),
        )
        with self.assertRaises(AuthVerificationError):
            await verifier.verify_token("expired")

    async def test_unconfigured_verifier_rejects_everything(self) -> None:
        verifier = SupabaseTokenVerifier(url=None, api_key=None)
        with self.assertRaises(AuthVerificationError):
            await verifier.verify_token("jwt-token")


if __name__ == "__main__":
    unittest.main()
