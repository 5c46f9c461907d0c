"""Generation provider interfaces."""

from abc import ABC, abstractmethod

from pydantic import BaseModel

from app.schemas.job import Prediction
from app.schemas.storyboard import ImageModel, RenderSettings, VideoModel, VideoStyle


class ImageRequest(BaseModel):
    prompt: str
    model: ImageModel
    style: VideoStyle
    aspect_ratio: str
    identity_anchor: str = ""


class VideoRequest(BaseModel):
    prompt: str
    image_url: str
    model: VideoModel
    style: VideoStyle
    generation_mode: str
    quality: str
    duration: int
    fps: int
    resolution: str
    identity_anchor: str = ""

    @classmethod
    def from_settings(
        cls,
        *,
        prompt: str,
        image_url: str,
        settings: RenderSettings,
        identity_anchor: str,
    ) -> "VideoRequest":
        return cls(
            prompt=prompt,
            image_url=image_url,
            model=settings.video_model,
            style=settings.video_style,
            generation_mode=settings.generation_mode,
            quality=settings.quality,
            duration=settings.duration,
            fps=settings.fps,
            resolution=settings.resolution,
            identity_anchor=identity_anchor,
        )


def anchored_prompt(prompt: str, identity_anchor: str) -> str:
    return f"{identity_anchor}, {prompt}" if identity_anchor else prompt


class GenerationProvider(ABC):
    """Provider-neutral image/video generation interface.

    Implementations raise ``ExternalSubmissionError`` for rejected submissions
    and ``PollingError`` for failed status queries.
    """

    @abstractmethod
    async def generate_image(self, request: ImageRequest) -> str:
        """Generate one image and return its URL once it is ready."""

    @abstractmethod
    async def start_video(self, request: VideoRequest) -> Prediction:
        """Submit a video job and return the provider's initial snapshot."""

    @abstractmethod
    async def get_prediction(self, prediction_id: str) -> Prediction:
        """Return the current provider snapshot for a job."""

    async def aclose(self) -> None:
        return None


__all__ = ["GenerationProvider", "ImageRequest", "VideoRequest", "anchored_prompt"]
