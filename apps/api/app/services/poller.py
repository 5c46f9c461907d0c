"""Recurring status sweep over outstanding generation jobs."""

from __future__ import annotations

import asyncio
from datetime import timedelta
import logging

from app.adapters.generation.base import GenerationProvider
from app.core.logging_safety import safe_log_identifier, safe_log_reason
from app.domain.job_fsm import is_terminal, map_remote_status
from app.errors import PollingError
from app.schemas.job import JobLifecycle
from app.services import messages
from app.services.job_registry import JobRecord, JobRegistry

logger = logging.getLogger(__name__)


class JobPoller:
    """Resolves outstanding jobs by querying the provider on a fixed interval.

    The loop runs only while the registry has outstanding jobs; call
    :meth:`ensure_running` after registering work and :meth:`stop` on teardown.
    """

    def __init__(
        self,
        *,
        registry: JobRegistry,
        provider: GenerationProvider,
        interval_seconds: float = 3.0,
        timeout_seconds: float = 600.0,
    ) -> None:
        self._registry = registry
        self._provider = provider
        self._interval = interval_seconds
        self._timeout = timedelta(seconds=timeout_seconds)
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def ensure_running(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def sweep(self) -> None:
        """Query every outstanding job once, isolating failures per job."""
        jobs = [
            (job, job.external_id)
            for scene_number in sorted(self._registry.outstanding())
            if (job := self._registry.get(scene_number)) is not None and job.external_id is not None
        ]
        if not jobs:
            return

        now = self._registry.now()
        to_query: list[tuple[JobRecord, str]] = []
        for job, external_id in jobs:
            elapsed = now - job.started_at
            if elapsed > self._timeout:
                logger.warning(
                    "poller.timed_out scene=%s job_id=%s elapsed_s=%s",
                    job.scene_number,
                    safe_log_identifier(external_id, prefix="xid"),
                    int(elapsed.total_seconds()),
                )
                self._registry.resolve(
                    job.scene_number,
                    JobLifecycle.TIMED_OUT,
                    {"message": messages.TIMED_OUT},
                    external_id=external_id,
                )
            else:
                to_query.append((job, external_id))

        await asyncio.gather(*(self._poll_one(job, external_id) for job, external_id in to_query))

    async def _poll_one(self, job: JobRecord, external_id: str) -> None:
        safe_job_id = safe_log_identifier(external_id, prefix="xid")
        try:
            prediction = await self._provider.get_prediction(external_id)
        except PollingError as exc:
            logger.warning(
                "poller.query_failed scene=%s job_id=%s reason=%s",
                job.scene_number,
                safe_job_id,
                safe_log_reason(exc),
            )
            return
        except Exception as exc:
            logger.exception(
                "poller.query_crashed scene=%s job_id=%s reason=%s",
                job.scene_number,
                safe_job_id,
                type(exc).__name__,
            )
            return

        output = prediction.output_url()
        state = map_remote_status(prediction.status, output)
        if is_terminal(state):
            if state is JobLifecycle.SUCCEEDED:
                payload = {"output": output, "message": messages.VIDEO_DONE}
            else:
                raw_error = prediction.error or (
                    "Provider reported success without output" if prediction.status == "succeeded" else None
                )
                payload = {"error": raw_error, "message": messages.friendly_error(raw_error)}
            self._registry.resolve(job.scene_number, state, payload, external_id=external_id)
            return

        elapsed = (self._registry.now() - job.started_at).total_seconds()
        self._registry.mark_progress(
            job.scene_number,
            JobLifecycle.PROCESSING,
            messages.running_message(elapsed),
            external_id=external_id,
        )

    async def _run(self) -> None:
        logger.info("poller.started interval_s=%s", self._interval)
        try:
            while self._registry.outstanding():
                await asyncio.sleep(self._interval)
                await self.sweep()
        finally:
            logger.info("poller.stopped outstanding=%s", len(self._registry.outstanding()))


__all__ = ["JobPoller"]
