"""Outstanding generation jobs, keyed by scene."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Any, Callable

from app.core.clock import Clock, utc_now
from app.core.logging_safety import safe_log_identifier
from app.domain.job_fsm import ensure_transition, is_terminal
from app.schemas.job import Job, JobLifecycle

logger = logging.getLogger(__name__)

ResolutionListener = Callable[["JobRecord"], None]


@dataclass(slots=True)
class JobRecord:
    scene_number: int
    external_id: str | None
    started_at: datetime
    state: JobLifecycle
    message: str | None = None
    output: str | None = None
    error: str | None = None

    def to_view(self) -> Job:
        return Job(
            scene_number=self.scene_number,
            external_id=self.external_id,
            lifecycle_state=self.state,
            started_at=self.started_at,
            message=self.message,
            output=self.output,
        )


class JobRegistry:
    """Tracks at most one outstanding job per scene.

    Every method is synchronous, so each mutation is atomic with respect to
    other coroutines on the same event loop.
    """

    def __init__(self, *, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._outstanding: dict[int, JobRecord] = {}
        self._resolved: dict[int, JobRecord] = {}
        self._listeners: list[ResolutionListener] = []

    def now(self) -> datetime:
        return self._clock()

    def add_listener(self, listener: ResolutionListener) -> None:
        self._listeners.append(listener)

    def reserve(self, scene_number: int) -> bool:
        """Claim a scene before its submission is sent to the provider."""
        if scene_number in self._outstanding:
            return False
        self._outstanding[scene_number] = JobRecord(
            scene_number=scene_number,
            external_id=None,
            started_at=self._clock(),
            state=JobLifecycle.QUEUED,
        )
        return True

    def release(self, scene_number: int) -> None:
        """Drop a reservation that never reached the provider."""
        record = self._outstanding.get(scene_number)
        if record is not None and record.external_id is None:
            del self._outstanding[scene_number]

    def register(self, scene_number: int, external_id: str) -> bool:
        record = self._outstanding.get(scene_number)
        if record is not None and record.external_id is not None:
            logger.warning(
                "registry.register_rejected scene=%s job_id=%s outstanding_job_id=%s",
                scene_number,
                safe_log_identifier(external_id, prefix="xid"),
                safe_log_identifier(record.external_id, prefix="xid"),
            )
            return False

        if record is None:
            record = JobRecord(
                scene_number=scene_number,
                external_id=None,
                started_at=self._clock(),
                state=JobLifecycle.QUEUED,
            )
        ensure_transition(record.state, JobLifecycle.STARTING)
        record.external_id = external_id
        record.started_at = self._clock()
        record.state = JobLifecycle.STARTING
        self._outstanding[scene_number] = record
        logger.info(
            "registry.registered scene=%s job_id=%s",
            scene_number,
            safe_log_identifier(external_id, prefix="xid"),
        )
        return True

    def mark_progress(
        self,
        scene_number: int,
        state: JobLifecycle,
        message: str | None,
        *,
        external_id: str | None = None,
    ) -> bool:
        record = self._current(scene_number, external_id)
        if is_terminal(state):
            raise ValueError("Use resolve() for terminal states")
        if record is None:
            return False
        ensure_transition(record.state, state)
        record.state = state
        record.message = message
        return True

    def resolve(
        self,
        scene_number: int,
        state: JobLifecycle,
        payload: dict[str, Any] | None = None,
        *,
        external_id: str | None = None,
    ) -> bool:
        """Move a scene's outstanding job to a terminal state.

        Returns False without side effects when there is nothing to resolve.
        """
        if not is_terminal(state):
            raise ValueError(f"{state.value} is not a terminal state")
        record = self._current(scene_number, external_id)
        if record is None:
            return False

        ensure_transition(record.state, state)
        payload = payload or {}
        record.state = state
        record.output = payload.get("output")
        record.error = payload.get("error")
        record.message = payload.get("message")
        del self._outstanding[scene_number]
        self._resolved[scene_number] = record

        logger.info(
            "registry.resolved scene=%s job_id=%s state=%s",
            scene_number,
            safe_log_identifier(record.external_id, prefix="xid"),
            state.value,
        )
        for listener in list(self._listeners):
            try:
                listener(record)
            except Exception:
                logger.exception("registry.listener_failed scene=%s state=%s", scene_number, state.value)
        return True

    def outstanding(self) -> frozenset[int]:
        return frozenset(self._outstanding)

    def get(self, scene_number: int) -> JobRecord | None:
        return self._outstanding.get(scene_number)

    def last_result(self, scene_number: int) -> JobRecord | None:
        return self._resolved.get(scene_number)

    def _current(self, scene_number: int, external_id: str | None) -> JobRecord | None:
        record = self._outstanding.get(scene_number)
        if record is None:
            return None
        if external_id is not None and record.external_id != external_id:
            return None
        return record
