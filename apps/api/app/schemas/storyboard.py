"""Storyboard, scene and render settings schemas."""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from app.schemas.job import Job


class ImageModel(str, Enum):
    FLUX = "flux"
    FLUX_SCHNELL = "flux_schnell"
    NANO_BANANA = "nano_banana"


class VideoModel(str, Enum):
    WAN_2_5 = "wan_2_5"
    HAILUO_02 = "hailuo_02"
    VEO_3_1 = "veo_3_1"
    PIXVERSE_V5 = "pixverse_v5"
    SEEDANCE_1_5_PRO = "seedance_1_5_pro"
    SORA_2_PRO = "sora_2_pro"


class VideoStyle(str, Enum):
    NONE = "none"
    CHINESE_3D = "chinese_3d"
    CHINESE_INK = "chinese_ink"
    POP_MART = "pop_mart"
    REALISM = "realism"
    BLOCKBUSTER_3D = "blockbuster_3d"
    CYBERPUNK = "cyberpunk"
    GHIBLI = "ghibli"
    SHINKAI = "shinkai"


class PlanTier(str, Enum):
    CREATOR = "creator"
    DIRECTOR = "director"


class SceneStatus(str, Enum):
    IDLE = "idle"
    IMAGE_GENERATING = "image_generating"
    IMAGE_READY = "image_ready"
    QUEUED = "queued"
    STARTING = "starting"
    PROCESSING = "processing"
    DONE = "done"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


AspectRatio = Literal["1:1", "3:4", "4:3", "9:16", "16:9"]


class RenderSettings(BaseModel):
    image_model: ImageModel = ImageModel.FLUX
    video_model: VideoModel = VideoModel.HAILUO_02
    video_style: VideoStyle = VideoStyle.POP_MART
    aspect_ratio: AspectRatio = "16:9"
    generation_mode: Literal["storyboard", "story"] = "storyboard"
    quality: Literal["draft", "standard", "pro"] = "standard"
    duration: Literal[4, 6, 8] = 6
    fps: Literal[12, 24] = 12
    resolution: Literal["720p", "1080p"] = "720p"


class SceneInput(BaseModel):
    scene_number: int = Field(ge=1)
    visual_description: str = Field(min_length=1)
    audio_description: str = ""
    shot_type: str = ""
    image_prompt: str | None = None
    video_motion_prompt: str | None = None
    image_url: str | None = None


class CreateStoryboardRequest(BaseModel):
    project_title: str = Field(min_length=1)
    visual_style: str = ""
    character_anchor: str = ""
    scenes: list[SceneInput] = Field(min_length=1)

    @field_validator("scenes")
    @classmethod
    def _unique_scene_numbers(cls, scenes: list[SceneInput]) -> list[SceneInput]:
        numbers = [scene.scene_number for scene in scenes]
        if len(numbers) != len(set(numbers)):
            raise ValueError("scene_number values must be unique")
        return scenes


class Scene(BaseModel):
    scene_number: int
    visual_description: str
    shot_type: str
    image_url: str | None = None
    video_url: str | None = None
    status: SceneStatus
    message: str | None = None
    job: Job | None = None


class Storyboard(BaseModel):
    id: str
    project_title: str
    visual_style: str
    character_anchor: str
    scenes: list[Scene]
    created_at: datetime


class RenderBatchResult(BaseModel):
    attempted: list[int] = Field(default_factory=list)
    succeeded: list[int] = Field(default_factory=list)
    skipped: list[int] = Field(default_factory=list)
    failed: list[int] = Field(default_factory=list)
    insufficient_balance: list[int] = Field(default_factory=list)
    upgrade_required: bool = False
    halted: bool = False


class RenderRequest(BaseModel):
    settings: RenderSettings = Field(default_factory=RenderSettings)
