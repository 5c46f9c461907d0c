"""Generation provider adapter tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
import json
import unittest

import httpx

from app.adapters.generation.base import ImageRequest, VideoRequest
from app.adapters.generation.mock import SAMPLE_VIDEO_URL, MockGenerationProvider
from app.adapters.generation.replicate import ReplicateProvider, build_video_input
from app.errors import ExternalSubmissionError, PollingError
from app.schemas.storyboard import ImageModel, RenderSettings, VideoModel, VideoStyle


def _video_request(model: VideoModel) -> VideoRequest:
    return VideoRequest.from_settings(
        prompt="slow dolly in",
        image_url="https://img.example/1.jpg",
        settings=RenderSettings(video_model=model, resolution="1080p", duration=8),
        identity_anchor="a small robot",
    )


class BuildVideoInputTests(unittest.TestCase):
    def test_prompt_carries_identity_anchor(self) -> None:
        payload = build_video_input(_video_request(VideoModel.WAN_2_5))
        self.assertIn("a small robot, slow dolly in", payload["prompt"])
        self.assertEqual(payload["image"], "https://img.example/1.jpg")

    def test_model_specific_field_names(self) -> None:
        hailuo = build_video_input(_video_request(VideoModel.HAILUO_02))
        self.assertEqual(hailuo["first_frame_image"], "https://img.example/1.jpg")
        self.assertEqual(hailuo["resolution"], "1080p")

        sora = build_video_input(_video_request(VideoModel.SORA_2_PRO))
        self.assertEqual(sora["input_reference"], "https://img.example/1.jpg")
        self.assertEqual(sora["seconds"], 8)


class ReplicateProviderTests(unittest.IsolatedAsyncioTestCase):
    async def test_start_video_posts_model_prediction(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"id": "pred-1", "status": "starting"})

        provider = ReplicateProvider(api_token="r8-token", transport=httpx.MockTransport(handler))
        try:
            prediction = await provider.start_video(_video_request(VideoModel.HAILUO_02))
        finally:
            await provider.aclose()

        self.assertEqual(prediction.id, "pred-1")
        request = seen[0]
        self.assertEqual(request.method, "POST")
        self.assertEqual(request.url.path, "/v1/models/minimax/hailuo-02/predictions")
        self.assertEqual(request.headers["Authorization"], "Bearer r8-token")
        self.assertNotIn("Prefer", request.headers)
        body = json.loads(request.content)
        self.assertEqual(body["input"]["first_frame_image"], "https://img.example/1.jpg")

    async def test_rejected_submission_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(422, json={"detail": "NSFW content detected"})

        provider = ReplicateProvider(api_token="r8-token", transport=httpx.MockTransport(handler))
        try:
            with self.assertRaises(ExternalSubmissionError) as context:
                await provider.start_video(_video_request(VideoModel.WAN_2_5))
        finally:
            await provider.aclose()
        self.assertIn("422", str(context.exception))

    async def test_generate_image_polls_until_terminal(self) -> None:
        responses = iter(
            [
                httpx.Response(201, json={"id": "img-1", "status": "processing"}),
                httpx.Response(200, json={"id": "img-1", "status": "processing"}),
                httpx.Response(200, json={"id": "img-1", "status": "succeeded", "output": "https://img.example/a.jpg"}),
            ]
        )
        paths: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(f"{request.method} {request.url.path}")
            if request.method == "POST":
                self.assertEqual(request.headers["Prefer"], "wait")
            return next(responses)

        provider = ReplicateProvider(
            api_token="r8-token",
            image_poll_interval_seconds=0,
            transport=httpx.MockTransport(handler),
        )
        try:
            url = await provider.generate_image(
                ImageRequest(
                    prompt="market at night",
                    model=ImageModel.FLUX,
                    style=VideoStyle.POP_MART,
                    aspect_ratio="16:9",
                )
            )
        finally:
            await provider.aclose()

        self.assertEqual(url, "https://img.example/a.jpg")
        self.assertEqual(
            paths,
            [
                "POST /v1/models/black-forest-labs/flux-1.1-pro/predictions",
                "GET /v1/predictions/img-1",
                "GET /v1/predictions/img-1",
            ],
        )

    async def test_failed_image_prediction_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(201, json={"id": "img-2", "status": "failed", "error": "safety filter"})

        provider = ReplicateProvider(api_token="r8-token", transport=httpx.MockTransport(handler))
        try:
            with self.assertRaises(ExternalSubmissionError) as context:
                await provider.generate_image(
                    ImageRequest(prompt="x", model=ImageModel.FLUX_SCHNELL, style=VideoStyle.NONE, aspect_ratio="1:1")
                )
        finally:
            await provider.aclose()
        self.assertEqual(str(context.exception), "safety filter")

    async def test_malformed_submission_raises_submission_error(self) -> None:
        responses = iter(
            [
                httpx.Response(200, json={"status": "starting"}),
                httpx.Response(201, text="<html>gateway</html>"),
            ]
        )
        provider = ReplicateProvider(
            api_token="r8-token",
            transport=httpx.MockTransport(lambda request: next(responses)),
        )
        try:
            with self.assertRaises(ExternalSubmissionError):
                await provider.start_video(_video_request(VideoModel.WAN_2_5))
            with self.assertRaises(ExternalSubmissionError):
                await provider.start_video(_video_request(VideoModel.WAN_2_5))
        finally:
            await provider.aclose()

    async def test_malformed_status_raises_polling_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="not json")

        provider = ReplicateProvider(api_token="r8-token", transport=httpx.MockTransport(handler))
        try:
            with self.assertRaises(PollingError):
                await provider.get_prediction("pred-1")
        finally:
            await provider.aclose()

    async def test_status_errors_raise_polling_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="upstream unavailable")

        provider = ReplicateProvider(api_token="r8-token", transport=httpx.MockTransport(handler))
        try:
            with self.assertRaises(PollingError):
                await provider.get_prediction("pred-1")
        finally:
            await provider.aclose()


class _ManualClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now


class MockGenerationProviderTests(unittest.IsolatedAsyncioTestCase):
    async def test_video_status_progresses_with_elapsed_time(self) -> None:
        clock = _ManualClock()
        provider = MockGenerationProvider(clock=clock)
        prediction = await provider.start_video(_video_request(VideoModel.WAN_2_5))

        self.assertEqual((await provider.get_prediction(prediction.id)).status, "starting")
        clock.now += timedelta(seconds=5)
        self.assertEqual((await provider.get_prediction(prediction.id)).status, "processing")
        clock.now += timedelta(seconds=5)
        done = await provider.get_prediction(prediction.id)
        self.assertEqual(done.status, "succeeded")
        self.assertEqual(done.output_url(), SAMPLE_VIDEO_URL)

    async def test_unknown_prediction_raises(self) -> None:
        provider = MockGenerationProvider()
        with self.assertRaises(PollingError):
            await provider.get_prediction("missing")


if __name__ == "__main__":
    unittest.main()
