"""Mock generation provider for local development and tests."""

from __future__ import annotations

from datetime import datetime
from itertools import count

from app.adapters.generation.base import GenerationProvider, ImageRequest, VideoRequest
from app.core.clock import Clock, utc_now
from app.errors import PollingError
from app.schemas.job import Prediction, RemoteStatus

SAMPLE_VIDEO_URL = "https://storage.googleapis.com/gtv-videos-bucket/sample/ForBiggerJoyrides.mp4"


class MockGenerationProvider(GenerationProvider):
    """Deterministic placeholder media.

    Video jobs report ``starting`` for 3 seconds, ``processing`` until 8
    seconds, then ``succeeded`` with a sample clip.
    """

    def __init__(self, *, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._ids = count(1)
        self._started: dict[str, datetime] = {}

    async def generate_image(self, request: ImageRequest) -> str:
        return f"https://picsum.photos/seed/{next(self._ids)}/1280/720"

    async def start_video(self, request: VideoRequest) -> Prediction:
        prediction_id = f"mock-video-{next(self._ids)}"
        self._started[prediction_id] = self._clock()
        return Prediction(id=prediction_id, status=RemoteStatus.STARTING.value, logs="Mock video generation started")

    async def get_prediction(self, prediction_id: str) -> Prediction:
        started = self._started.get(prediction_id)
        if started is None:
            raise PollingError(f"Unknown prediction {prediction_id}")

        elapsed = (self._clock() - started).total_seconds()
        if elapsed < 3:
            return Prediction(id=prediction_id, status=RemoteStatus.STARTING.value)
        if elapsed < 8:
            return Prediction(id=prediction_id, status=RemoteStatus.PROCESSING.value, logs="Rendering frames...")
        return Prediction(id=prediction_id, status=RemoteStatus.SUCCEEDED.value, output=SAMPLE_VIDEO_URL)


__all__ = ["MockGenerationProvider", "SAMPLE_VIDEO_URL"]
