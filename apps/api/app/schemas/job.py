"""Generation job schemas."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel


class JobLifecycle(str, Enum):
    QUEUED = "queued"
    STARTING = "starting"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"
    TIMED_OUT = "timed_out"


class RemoteStatus(str, Enum):
    STARTING = "starting"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


class Prediction(BaseModel):
    """Provider-side job snapshot.

    ``status`` stays a plain string so unknown provider states can be treated
    as still running instead of failing validation.
    """

    id: str
    status: str
    output: Any = None
    error: str | None = None
    logs: str | None = None

    def output_url(self) -> str | None:
        """First output URL; list outputs yield their first element."""
        if isinstance(self.output, list):
            return str(self.output[0]) if self.output else None
        if self.output:
            return str(self.output)
        return None


class Job(BaseModel):
    scene_number: int
    external_id: str | None = None
    lifecycle_state: JobLifecycle
    started_at: datetime
    message: str | None = None
    output: str | None = None
