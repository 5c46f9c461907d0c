"""Storyboard service layer."""

from __future__ import annotations

from app.adapters.generation.base import GenerationProvider
from app.core.config import Settings
from app.errors import ApiError
from app.repositories.memory import (
    InMemoryStore,
    SceneRecord,
    StoryboardRecord,
    StoryboardRuntime,
    UserSession,
)
from app.schemas.job import JobLifecycle
from app.schemas.storyboard import (
    CreateStoryboardRequest,
    RenderBatchResult,
    RenderSettings,
    Scene,
    SceneStatus,
    Storyboard,
)
from app.services.job_registry import JobRegistry
from app.services.orchestrator import RenderOrchestrator, scene_result_listener
from app.services.poller import JobPoller
from app.services.sessions import upgrade_signal


class StoryboardService:
    def __init__(self, store: InMemoryStore, provider: GenerationProvider, settings: Settings) -> None:
        self._store = store
        self._provider = provider
        self._settings = settings

    def create_storyboard(self, *, owner_id: str, payload: CreateStoryboardRequest) -> Storyboard:
        record = self._store.create_storyboard(
            owner_id=owner_id,
            project_title=payload.project_title,
            visual_style=payload.visual_style,
            character_anchor=payload.character_anchor,
            scenes=payload.scenes,
        )
        return self._to_storyboard(record)

    def get_storyboard(self, *, owner_id: str, storyboard_id: str) -> Storyboard:
        """Return the storyboard, resuming polling for jobs left outstanding at logout."""
        record = self._require(owner_id, storyboard_id)
        runtime = self._store.get_runtime(record.id)
        if runtime is not None:
            self._resume_polling(runtime)
        return self._to_storyboard(record)

    async def render_images(
        self,
        *,
        session: UserSession,
        storyboard_id: str,
        settings: RenderSettings,
    ) -> RenderBatchResult:
        storyboard = self._require(session.balance.user_id, storyboard_id)
        return await self._orchestrator(storyboard, session, settings).render_all_images()

    async def render_videos(
        self,
        *,
        session: UserSession,
        storyboard_id: str,
        settings: RenderSettings,
    ) -> RenderBatchResult:
        storyboard = self._require(session.balance.user_id, storyboard_id)
        return await self._orchestrator(storyboard, session, settings).render_all_videos()

    async def render_scene_video(
        self,
        *,
        session: UserSession,
        storyboard_id: str,
        scene_number: int,
        settings: RenderSettings,
    ) -> Scene:
        storyboard = self._require(session.balance.user_id, storyboard_id)
        orchestrator = self._orchestrator(storyboard, session, settings)
        scene = await orchestrator.render_single_video(scene_number)
        return self._to_scene(scene, self._runtime(storyboard).registry)

    def _require(self, owner_id: str, storyboard_id: str) -> StoryboardRecord:
        record = self._store.get_storyboard_for_owner(owner_id=owner_id, storyboard_id=storyboard_id)
        if record is None:
            raise ApiError(status_code=404, code="RESOURCE_NOT_FOUND", message="Resource not found")
        return record

    def _runtime(self, storyboard: StoryboardRecord) -> StoryboardRuntime:
        runtime = self._store.get_runtime(storyboard.id)
        if runtime is not None:
            return runtime

        registry = JobRegistry()
        registry.add_listener(scene_result_listener(storyboard))
        poller = JobPoller(
            registry=registry,
            provider=self._provider,
            interval_seconds=self._settings.poll_interval_seconds,
            timeout_seconds=self._settings.job_timeout_seconds,
        )
        return self._store.put_runtime(storyboard.id, StoryboardRuntime(registry=registry, poller=poller))

    @staticmethod
    def _resume_polling(runtime: StoryboardRuntime) -> None:
        if runtime.registry.outstanding():
            runtime.poller.ensure_running()

    def _orchestrator(
        self,
        storyboard: StoryboardRecord,
        session: UserSession,
        settings: RenderSettings,
    ) -> RenderOrchestrator:
        runtime = self._runtime(storyboard)
        self._resume_polling(runtime)
        return RenderOrchestrator(
            storyboard=storyboard,
            balance=session.balance,
            registry=runtime.registry,
            poller=runtime.poller,
            provider=self._provider,
            settings=settings,
            halt_on_insufficient_balance=self._settings.halt_on_insufficient_balance,
            on_insufficient_funds=upgrade_signal(session),
        )

    def _to_storyboard(self, record: StoryboardRecord) -> Storyboard:
        runtime = self._store.get_runtime(record.id)
        registry = runtime.registry if runtime is not None else None
        return Storyboard(
            id=record.id,
            project_title=record.project_title,
            visual_style=record.visual_style,
            character_anchor=record.character_anchor,
            scenes=[self._to_scene(scene, registry) for scene in record.scenes],
            created_at=record.created_at,
        )

    @staticmethod
    def _to_scene(scene: SceneRecord, registry: JobRegistry | None) -> Scene:
        status = scene.status
        message = scene.message
        job = None
        if registry is not None:
            record = registry.get(scene.scene_number) or registry.last_result(scene.scene_number)
            if record is not None:
                job = record.to_view()
            # Progress lives on the outstanding job until it resolves.
            if record is not None and record.state is JobLifecycle.PROCESSING:
                status = SceneStatus.PROCESSING
                message = record.message
        return Scene(
            scene_number=scene.scene_number,
            visual_description=scene.visual_description,
            shot_type=scene.shot_type,
            image_url=scene.image_url,
            video_url=scene.video_url,
            status=status,
            message=message,
            job=job,
        )
