"""In-memory repositories used by the API and tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import uuid4

from app.core.clock import utc_now
from app.schemas.storyboard import SceneInput, SceneStatus
from app.services.balance import BalanceStore
from app.services.job_registry import JobRegistry
from app.services.poller import JobPoller


@dataclass(slots=True)
class SceneRecord:
    scene_number: int
    visual_description: str
    audio_description: str = ""
    shot_type: str = ""
    image_prompt: str | None = None
    video_motion_prompt: str | None = None
    image_url: str | None = None
    video_url: str | None = None
    status: SceneStatus = SceneStatus.IDLE
    message: str | None = None
    error: str | None = None

    def mark(self, status: SceneStatus, message: str | None, *, error: str | None = None) -> None:
        self.status = status
        self.message = message
        self.error = error


@dataclass(slots=True)
class StoryboardRecord:
    id: str
    owner_id: str
    project_title: str
    visual_style: str
    character_anchor: str
    scenes: list[SceneRecord]
    created_at: datetime

    def scene(self, scene_number: int) -> SceneRecord | None:
        for scene in self.scenes:
            if scene.scene_number == scene_number:
                return scene
        return None


@dataclass(slots=True)
class UserSession:
    balance: BalanceStore
    established_at: datetime
    upgrade_prompt: bool = False


@dataclass(slots=True)
class StoryboardRuntime:
    registry: JobRegistry
    poller: JobPoller


@dataclass(slots=True)
class InMemoryStore:
    """Simple, deterministic persistence layer for storyboards and sessions."""

    storyboards: dict[str, StoryboardRecord] = field(default_factory=dict)
    sessions: dict[str, UserSession] = field(default_factory=dict)
    runtimes: dict[str, StoryboardRuntime] = field(default_factory=dict)

    def create_storyboard(
        self,
        *,
        owner_id: str,
        project_title: str,
        visual_style: str,
        character_anchor: str,
        scenes: list[SceneInput],
    ) -> StoryboardRecord:
        records = [
            SceneRecord(
                scene_number=scene.scene_number,
                visual_description=scene.visual_description,
                audio_description=scene.audio_description,
                shot_type=scene.shot_type,
                image_prompt=scene.image_prompt,
                video_motion_prompt=scene.video_motion_prompt,
                image_url=scene.image_url,
                status=SceneStatus.IMAGE_READY if scene.image_url else SceneStatus.IDLE,
            )
            for scene in sorted(scenes, key=lambda item: item.scene_number)
        ]
        storyboard = StoryboardRecord(
            id=str(uuid4()),
            owner_id=owner_id,
            project_title=project_title,
            visual_style=visual_style,
            character_anchor=character_anchor,
            scenes=records,
            created_at=utc_now(),
        )
        self.storyboards[storyboard.id] = storyboard
        return storyboard

    def get_storyboard_for_owner(self, *, owner_id: str, storyboard_id: str) -> StoryboardRecord | None:
        storyboard = self.storyboards.get(storyboard_id)
        if storyboard is None or storyboard.owner_id != owner_id:
            return None
        return storyboard

    def list_storyboards_for_owner(self, owner_id: str) -> list[StoryboardRecord]:
        storyboards = [record for record in self.storyboards.values() if record.owner_id == owner_id]
        storyboards.sort(key=lambda record: record.created_at)
        return storyboards

    def get_session(self, user_id: str) -> UserSession | None:
        return self.sessions.get(user_id)

    def put_session(self, user_id: str, session: UserSession) -> UserSession:
        """Store a session unless another coroutine already established one."""
        return self.sessions.setdefault(user_id, session)

    def drop_session(self, user_id: str) -> UserSession | None:
        return self.sessions.pop(user_id, None)

    def get_runtime(self, storyboard_id: str) -> StoryboardRuntime | None:
        return self.runtimes.get(storyboard_id)

    def put_runtime(self, storyboard_id: str, runtime: StoryboardRuntime) -> StoryboardRuntime:
        return self.runtimes.setdefault(storyboard_id, runtime)
