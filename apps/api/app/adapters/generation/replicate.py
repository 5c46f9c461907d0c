"""Replicate HTTP generation provider."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx

from app.adapters.generation.base import GenerationProvider, ImageRequest, VideoRequest, anchored_prompt
from app.core.logging_safety import safe_log_identifier
from app.errors import ExternalSubmissionError, PollingError
from app.schemas.job import Prediction, RemoteStatus
from app.schemas.storyboard import ImageModel, VideoModel

logger = logging.getLogger(__name__)

REPLICATE_MODELS: dict[str, str] = {
    ImageModel.FLUX.value: "black-forest-labs/flux-1.1-pro",
    ImageModel.FLUX_SCHNELL.value: "black-forest-labs/flux-schnell",
    ImageModel.NANO_BANANA.value: "google/nano-banana",
    VideoModel.WAN_2_5.value: "wan-video/wan-2.5-i2v",
    VideoModel.HAILUO_02.value: "minimax/hailuo-02",
    VideoModel.VEO_3_1.value: "google/veo-3.1-fast",
    VideoModel.PIXVERSE_V5.value: "pixverse/pixverse-v5",
    VideoModel.SEEDANCE_1_5_PRO.value: "bytedance/seedance-1-pro",
    VideoModel.SORA_2_PRO.value: "openai/sora-2-pro",
}

# Prefix keeping image-to-video models anchored to the first frame.
_FIRST_FRAME_CONSISTENCY = (
    "High fidelity. Strict consistency with the first frame. "
    "Do not change the character face or costume. Smooth motion."
)

_TERMINAL_REMOTE = {RemoteStatus.SUCCEEDED.value, RemoteStatus.FAILED.value, RemoteStatus.CANCELED.value}


def build_video_input(request: VideoRequest) -> dict[str, Any]:
    """Map a video request onto each model's input field names."""
    prompt = f"{_FIRST_FRAME_CONSISTENCY} {anchored_prompt(request.prompt, request.identity_anchor)}"
    model = request.model
    if model is VideoModel.HAILUO_02:
        return {
            "prompt": prompt,
            "first_frame_image": request.image_url,
            "duration": request.duration,
            "resolution": "1080p" if request.resolution == "1080p" else "768p",
            "prompt_optimizer": True,
        }
    if model is VideoModel.SEEDANCE_1_5_PRO:
        return {
            "prompt": prompt,
            "image": request.image_url,
            "duration": request.duration,
            "resolution": request.resolution,
            "fps": request.fps,
        }
    if model is VideoModel.VEO_3_1:
        return {
            "prompt": prompt,
            "image": request.image_url,
            "duration": request.duration,
            "resolution": request.resolution,
        }
    if model is VideoModel.SORA_2_PRO:
        return {
            "prompt": prompt,
            "input_reference": request.image_url,
            "seconds": request.duration,
        }
    return {
        "prompt": prompt,
        "image": request.image_url,
        "duration": request.duration,
        "resolution": request.resolution,
    }


def _parse_prediction(response: httpx.Response) -> Prediction:
    # pydantic.ValidationError and JSONDecodeError are both ValueErrors.
    return Prediction.model_validate(response.json())


class ReplicateProvider(GenerationProvider):
    def __init__(
        self,
        *,
        api_token: str | None,
        api_base: str = "https://api.replicate.com/v1",
        timeout_seconds: float = 60.0,
        image_poll_interval_seconds: float = 3.0,
        image_timeout_seconds: float = 300.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Content-Type": "application/json"}
        if api_token:
            headers["Authorization"] = f"Bearer {api_token}"
        self._client = httpx.AsyncClient(
            base_url=api_base.rstrip("/"),
            headers=headers,
            timeout=timeout_seconds,
            transport=transport,
        )
        self._image_poll_interval = image_poll_interval_seconds
        self._image_timeout = image_timeout_seconds

    async def generate_image(self, request: ImageRequest) -> str:
        prediction = await self._create_prediction(
            REPLICATE_MODELS[request.model.value],
            {
                "prompt": anchored_prompt(request.prompt, request.identity_anchor),
                "aspect_ratio": request.aspect_ratio,
                "output_format": "jpg",
            },
            wait=True,
        )

        deadline = time.monotonic() + self._image_timeout
        while prediction.status not in _TERMINAL_REMOTE:
            if time.monotonic() > deadline:
                raise ExternalSubmissionError(f"Image prediction {prediction.id} timed out")
            await asyncio.sleep(self._image_poll_interval)
            try:
                prediction = await self.get_prediction(prediction.id)
            except PollingError as exc:
                raise ExternalSubmissionError(str(exc)) from exc

        url = prediction.output_url()
        if prediction.status != RemoteStatus.SUCCEEDED.value or url is None:
            raise ExternalSubmissionError(prediction.error or f"Image prediction ended as {prediction.status}")
        return url

    async def start_video(self, request: VideoRequest) -> Prediction:
        return await self._create_prediction(
            REPLICATE_MODELS[request.model.value],
            build_video_input(request),
            wait=False,
        )

    async def get_prediction(self, prediction_id: str) -> Prediction:
        try:
            response = await self._client.get(f"/predictions/{prediction_id}")
        except httpx.HTTPError as exc:
            raise PollingError(f"Status request failed: {type(exc).__name__}") from exc
        if response.status_code >= 400:
            raise PollingError(f"HTTP {response.status_code}: {response.text}")
        try:
            return _parse_prediction(response)
        except ValueError as exc:
            raise PollingError(f"Malformed status response: {type(exc).__name__}") from exc

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _create_prediction(self, model: str, payload: dict[str, Any], *, wait: bool) -> Prediction:
        headers = {"Prefer": "wait"} if wait else None
        try:
            response = await self._client.post(
                f"/models/{model}/predictions",
                json={"input": payload},
                headers=headers,
            )
        except httpx.HTTPError as exc:
            logger.warning("replicate.submit_failed model=%s reason=%s", model, type(exc).__name__)
            raise ExternalSubmissionError(f"Submission request failed: {type(exc).__name__}") from exc

        if response.status_code >= 400:
            logger.warning("replicate.submit_rejected model=%s status_code=%s", model, response.status_code)
            raise ExternalSubmissionError(f"HTTP {response.status_code}: {response.text}")

        try:
            prediction = _parse_prediction(response)
        except ValueError as exc:
            logger.warning("replicate.submit_malformed model=%s reason=%s", model, type(exc).__name__)
            raise ExternalSubmissionError(f"Malformed submission response: {type(exc).__name__}") from exc
        logger.info(
            "replicate.submitted model=%s prediction_id=%s status=%s",
            model,
            safe_log_identifier(prediction.id, prefix="xid"),
            prediction.status,
        )
        return prediction


__all__ = ["REPLICATE_MODELS", "ReplicateProvider", "build_video_input"]
