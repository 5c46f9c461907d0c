"""Remote ledger adapter and session service tests."""

from __future__ import annotations

import asyncio
import json
import unittest

import httpx

from app.adapters.generation.mock import MockGenerationProvider
from app.adapters.ledger.memory import InMemoryLedger
from app.adapters.ledger.supabase import SupabaseLedger
from app.core.config import Settings
from app.errors import ApiError, InsufficientBalanceError, LedgerSyncError
from app.repositories.memory import InMemoryStore
from app.schemas.auth import AuthPrincipal
from app.schemas.storyboard import (
    CreateStoryboardRequest,
    PlanTier,
    RenderSettings,
    SceneInput,
    VideoModel,
)
from app.schemas.wallet import LedgerProfile, SpendRecord
from app.services.ledger_sync import LedgerSync
from app.services.sessions import SessionService, upgrade_signal
from app.services.storyboards import StoryboardService


class SupabaseLedgerTests(unittest.IsolatedAsyncioTestCase):
    async def test_fetch_profile_reads_single_row(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={"id": "uuid-1", "credits": 120, "monthly_credits_used": 30, "is_pro": True, "plan_type": "director"},
            )

        ledger = SupabaseLedger(
            url="https://project.supabase.co",
            service_key="service-key",
            transport=httpx.MockTransport(handler),
        )
        try:
            profile = await ledger.fetch_profile("uuid-1")
        finally:
            await ledger.aclose()

        self.assertEqual(profile.credits, 120)
        self.assertEqual(profile.plan_type, "director")
        self.assertFalse(profile.is_admin)
        request = seen[0]
        self.assertEqual(request.url.path, "/rest/v1/profiles")
        self.assertEqual(request.url.params["id"], "eq.uuid-1")
        self.assertEqual(request.headers["apikey"], "service-key")

    async def test_deduct_rpc_sends_spend_record(self) -> None:
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json=True)

        ledger = SupabaseLedger(
            url="https://project.supabase.co",
            service_key="service-key",
            transport=httpx.MockTransport(handler),
        )
        try:
            await ledger.deduct_credits(
                "uuid-1",
                42,
                SpendRecord(amount=42, model="wan_2_5", base_cost=38, multiplier=1.1),
            )
        finally:
            await ledger.aclose()

        self.assertEqual(
            bodies[0],
            {
                "target_user": "uuid-1",
                "amount_to_deduct": 42,
                "model_used": "wan_2_5",
                "base_cost": 38,
                "multiplier": 1.1,
            },
        )

    async def test_rejected_or_failed_writes_raise(self) -> None:
        responses = iter([httpx.Response(200, json=False), httpx.Response(500, text="boom")])
        ledger = SupabaseLedger(
            url="https://project.supabase.co",
            service_key="service-key",
            transport=httpx.MockTransport(lambda request: next(responses)),
        )
        try:
            with self.assertRaises(LedgerSyncError):
                await ledger.deduct_credits("uuid-1", 10, None)
            with self.assertRaises(LedgerSyncError):
                await ledger.overwrite_balance("uuid-1", credits=5, monthly_credits_used=10)
        finally:
            await ledger.aclose()

    async def test_malformed_profile_raises(self) -> None:
        ledger = SupabaseLedger(
            url="https://project.supabase.co",
            service_key="service-key",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=[])),
        )
        try:
            with self.assertRaises(LedgerSyncError):
                await ledger.fetch_profile("uuid-1")
        finally:
            await ledger.aclose()

    def test_requires_credentials(self) -> None:
        with self.assertRaises(ValueError):
            SupabaseLedger(url=None, service_key="key")


class _FailingLedger(InMemoryLedger):
    async def fetch_profile(self, user_id: str) -> LedgerProfile:
        raise LedgerSyncError("HTTP 503")


class SessionServiceTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.store = InMemoryStore()
        self.ledger = InMemoryLedger(default_credits=25)
        self.sync = LedgerSync(self.ledger)
        self.service = SessionService(self.store, self.ledger, self.sync)

    async def asyncTearDown(self) -> None:
        await self.sync.drain()

    async def test_concurrent_first_requests_share_one_session(self) -> None:
        principal = AuthPrincipal(user_id="user-a")

        first, second = await asyncio.gather(
            self.service.establish(principal),
            self.service.establish(principal),
        )

        self.assertIs(first, second)
        self.assertIs(first.balance, second.balance)
        self.assertEqual(first.balance.balance, 25)

    async def test_profile_failure_is_reported_as_unavailable(self) -> None:
        service = SessionService(self.store, _FailingLedger(), self.sync)

        with self.assertLogs("app.services.sessions", level="ERROR"):
            with self.assertRaises(ApiError) as context:
                await service.establish(AuthPrincipal(user_id="user-a"))
        self.assertEqual(context.exception.status_code, 503)
        self.assertEqual(self.store.sessions, {})

    async def test_upgrade_signal_and_clearing(self) -> None:
        session = await self.service.establish(AuthPrincipal(user_id="user-a"))

        upgrade_signal(session)(InsufficientBalanceError(required=75, available=25))
        self.assertTrue(self.service.wallet(session).upgrade_prompt)

        wallet = await self.service.upgrade(session, tier=PlanTier.CREATOR)
        self.assertFalse(wallet.upgrade_prompt)
        self.assertEqual(wallet.balance, 1025)
        self.assertEqual(wallet.plan_type, "creator")
        self.assertTrue(wallet.is_pro)

    async def test_logout_discards_balance(self) -> None:
        await self.service.establish(AuthPrincipal(user_id="user-a"))

        await self.service.logout("user-a")

        self.assertIsNone(self.store.get_session("user-a"))

    async def test_polling_resumes_after_logging_back_in(self) -> None:
        self.ledger.seed(LedgerProfile(user_id="user-b", credits=200))
        storyboards = StoryboardService(
            self.store,
            MockGenerationProvider(),
            Settings(poll_interval_seconds=60),
        )
        storyboard = storyboards.create_storyboard(
            owner_id="user-b",
            payload=CreateStoryboardRequest(
                project_title="Night Market",
                scenes=[SceneInput(scene_number=1, visual_description="a lantern", image_url="https://img.example/1.jpg")],
            ),
        )
        render_settings = RenderSettings(video_model=VideoModel.WAN_2_5)

        session = await self.service.establish(AuthPrincipal(user_id="user-b"))
        first = await storyboards.render_scene_video(
            session=session,
            storyboard_id=storyboard.id,
            scene_number=1,
            settings=render_settings,
        )
        runtime = self.store.get_runtime(storyboard.id)
        self.addAsyncCleanup(runtime.poller.stop)

        await self.service.logout("user-b")
        self.assertFalse(runtime.poller.running)
        self.assertEqual(runtime.registry.outstanding(), frozenset({1}))

        session = await self.service.establish(AuthPrincipal(user_id="user-b"))
        storyboards.get_storyboard(owner_id="user-b", storyboard_id=storyboard.id)
        self.assertTrue(runtime.poller.running)

        await runtime.poller.stop()
        again = await storyboards.render_scene_video(
            session=session,
            storyboard_id=storyboard.id,
            scene_number=1,
            settings=render_settings,
        )
        self.assertTrue(runtime.poller.running)
        self.assertEqual(again.job.external_id, first.job.external_id)


if __name__ == "__main__":
    unittest.main()
