"""Batch and single-scene rendering on top of the balance store and job registry."""

from __future__ import annotations

import logging
from typing import Callable, Mapping

from app.adapters.generation.base import GenerationProvider, ImageRequest, VideoRequest
from app.core.logging_safety import safe_log_identifier, safe_log_reason
from app.core.pricing import image_spend, video_quote
from app.errors import ApiError, ExternalSubmissionError, InsufficientBalanceError
from app.repositories.memory import SceneRecord, StoryboardRecord
from app.schemas.job import JobLifecycle
from app.schemas.storyboard import RenderBatchResult, RenderSettings, SceneStatus, VideoModel
from app.schemas.wallet import SpendRecord
from app.services import messages
from app.services.balance import BalanceStore
from app.services.job_registry import JobRecord, JobRegistry, ResolutionListener
from app.services.poller import JobPoller

logger = logging.getLogger(__name__)

InsufficientFundsSignal = Callable[[InsufficientBalanceError], None]

_DEFAULT_MOTION = "cinematic motion"


def scene_result_listener(storyboard: StoryboardRecord) -> ResolutionListener:
    """Copy terminal job results onto the storyboard's scenes."""

    def apply(record: JobRecord) -> None:
        scene = storyboard.scene(record.scene_number)
        if scene is None:
            return
        if record.state is JobLifecycle.SUCCEEDED:
            scene.video_url = record.output
            scene.mark(SceneStatus.DONE, messages.VIDEO_DONE)
        elif record.state is JobLifecycle.TIMED_OUT:
            scene.mark(SceneStatus.TIMED_OUT, messages.TIMED_OUT)
        else:
            scene.mark(
                SceneStatus.FAILED,
                record.message or messages.friendly_error(record.error),
                error=record.error,
            )

    return apply


class RenderOrchestrator:
    """Runs paid generation steps for one storyboard.

    Every spend path deducts from the balance store before its first await and
    refunds the charge when the provider rejects the submission. Video jobs are
    reserved in the registry before submission so one scene never has two jobs
    in flight.
    """

    def __init__(
        self,
        *,
        storyboard: StoryboardRecord,
        balance: BalanceStore,
        registry: JobRegistry,
        poller: JobPoller,
        provider: GenerationProvider,
        settings: RenderSettings | None = None,
        halt_on_insufficient_balance: bool = False,
        on_insufficient_funds: InsufficientFundsSignal | None = None,
        video_multipliers: Mapping[VideoModel, float] | None = None,
    ) -> None:
        self._storyboard = storyboard
        self._balance = balance
        self._registry = registry
        self._poller = poller
        self._provider = provider
        self._settings = settings or RenderSettings()
        self._halt = halt_on_insufficient_balance
        self._on_insufficient_funds = on_insufficient_funds
        self._video_multipliers = video_multipliers

    async def render_all_images(self) -> RenderBatchResult:
        result = RenderBatchResult()
        for scene in self._storyboard.scenes:
            number = scene.scene_number
            if scene.image_url or scene.status is SceneStatus.IMAGE_GENERATING:
                result.skipped.append(number)
                continue

            result.attempted.append(number)
            try:
                await self._synthesize_image(scene)
            except InsufficientBalanceError as exc:
                result.insufficient_balance.append(number)
                self._signal_insufficient_funds(exc, result)
                if self._halt:
                    result.halted = True
                    break
                continue
            except ExternalSubmissionError:
                result.failed.append(number)
                continue
            result.succeeded.append(number)

        self._log_batch("images", result)
        return result

    async def render_all_videos(self) -> RenderBatchResult:
        result = RenderBatchResult()
        for scene in self._storyboard.scenes:
            number = scene.scene_number
            if scene.status is SceneStatus.DONE or self._registry.get(number) is not None:
                result.skipped.append(number)
                continue
            if scene.image_url is None and scene.status is SceneStatus.IMAGE_GENERATING:
                result.skipped.append(number)
                continue

            result.attempted.append(number)
            try:
                submitted = await self._render_video(scene)
            except InsufficientBalanceError as exc:
                result.insufficient_balance.append(number)
                self._signal_insufficient_funds(exc, result)
                if self._halt:
                    result.halted = True
                    break
                continue
            except ExternalSubmissionError:
                result.failed.append(number)
                continue

            if submitted:
                result.succeeded.append(number)
            else:
                result.skipped.append(number)

        if self._registry.outstanding():
            self._poller.ensure_running()
        self._log_batch("videos", result)
        return result

    async def render_single_video(self, scene_number: int) -> SceneRecord:
        scene = self._storyboard.scene(scene_number)
        if scene is None:
            raise ApiError(status_code=404, code="RESOURCE_NOT_FOUND", message="Resource not found")

        try:
            await self._render_video(scene)
        except InsufficientBalanceError as exc:
            self._signal_insufficient_funds(exc, None)
            raise
        except ExternalSubmissionError:
            # Scene already carries the failed status and friendly message.
            pass
        return scene

    async def _render_video(self, scene: SceneRecord) -> bool:
        """Submit one scene's video; returns False when its image or job is already in flight."""
        number = scene.scene_number
        if scene.image_url is None and scene.status is SceneStatus.IMAGE_GENERATING:
            logger.info(
                "render.image_in_flight storyboard_id=%s scene=%s",
                safe_log_identifier(self._storyboard.id, prefix="sid"),
                number,
            )
            return False
        if not self._registry.reserve(number):
            logger.info(
                "render.duplicate_skipped storyboard_id=%s scene=%s",
                safe_log_identifier(self._storyboard.id, prefix="sid"),
                number,
            )
            # The outstanding job may predate a stopped poller.
            self._poller.ensure_running()
            return False

        registered = False
        try:
            image_url = scene.image_url or await self._synthesize_image(scene)

            quote = video_quote(self._settings.video_model, multipliers=self._video_multipliers)
            self._charge(quote)
            scene.video_url = None
            scene.mark(SceneStatus.QUEUED, messages.VIDEO_SUBMITTING)
            request = VideoRequest.from_settings(
                prompt=scene.video_motion_prompt or scene.shot_type or _DEFAULT_MOTION,
                image_url=image_url,
                settings=self._settings,
                identity_anchor=self._storyboard.character_anchor,
            )
            try:
                prediction = await self._provider.start_video(request)
            except ExternalSubmissionError as exc:
                self._refund(quote, scene, exc, status=SceneStatus.FAILED)
                raise

            registered = self._registry.register(number, prediction.id)
            scene.mark(SceneStatus.STARTING, messages.VIDEO_STARTED)
        finally:
            if not registered:
                self._registry.release(number)

        self._poller.ensure_running()
        return True

    async def _synthesize_image(self, scene: SceneRecord) -> str:
        spend = image_spend(self._settings.image_model)
        self._charge(spend)
        previous_status = scene.status
        scene.mark(SceneStatus.IMAGE_GENERATING, messages.IMAGE_GENERATING)
        prompt = scene.image_prompt or ", ".join(
            part for part in (scene.visual_description, scene.shot_type) if part
        )
        request = ImageRequest(
            prompt=prompt,
            model=self._settings.image_model,
            style=self._settings.video_style,
            aspect_ratio=self._settings.aspect_ratio,
            identity_anchor=self._storyboard.character_anchor,
        )
        try:
            url = await self._provider.generate_image(request)
        except ExternalSubmissionError as exc:
            self._refund(spend, scene, exc, status=SceneStatus.FAILED, message=messages.IMAGE_FAILED)
            raise
        except BaseException:
            scene.mark(previous_status, None)
            raise

        scene.image_url = url
        scene.mark(SceneStatus.IMAGE_READY, messages.IMAGE_READY)
        return url

    def _charge(self, spend: SpendRecord) -> None:
        if not self._balance.check_and_deduct(spend.amount, spend):
            raise InsufficientBalanceError(required=spend.amount, available=self._balance.balance)

    def _refund(
        self,
        spend: SpendRecord,
        scene: SceneRecord,
        exc: ExternalSubmissionError,
        *,
        status: SceneStatus,
        message: str | None = None,
    ) -> None:
        self._balance.credit(spend.amount, reason="refund")
        friendly = messages.friendly_error(str(exc))
        if message is not None and friendly == messages.GENERATION_FAILED:
            friendly = message
        scene.mark(status, friendly, error=str(exc))
        logger.warning(
            "render.submission_failed storyboard_id=%s scene=%s model=%s refunded=%s reason=%s",
            safe_log_identifier(self._storyboard.id, prefix="sid"),
            scene.scene_number,
            spend.model,
            spend.amount,
            safe_log_reason(exc),
        )

    def _signal_insufficient_funds(
        self,
        exc: InsufficientBalanceError,
        result: RenderBatchResult | None,
    ) -> None:
        if result is not None:
            result.upgrade_required = True
        if self._on_insufficient_funds is not None:
            self._on_insufficient_funds(exc)

    def _log_batch(self, kind: str, result: RenderBatchResult) -> None:
        logger.info(
            "render.batch_finished storyboard_id=%s kind=%s attempted=%s succeeded=%s failed=%s "
            "insufficient=%s halted=%s",
            safe_log_identifier(self._storyboard.id, prefix="sid"),
            kind,
            len(result.attempted),
            len(result.succeeded),
            len(result.failed),
            len(result.insufficient_balance),
            result.halted,
        )


__all__ = ["RenderOrchestrator", "scene_result_listener"]
