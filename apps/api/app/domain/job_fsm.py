"""Generation job lifecycle transition rules."""

from app.errors import JobTransitionError
from app.schemas.job import JobLifecycle, RemoteStatus

TERMINAL_STATES: frozenset[JobLifecycle] = frozenset(
    {
        JobLifecycle.SUCCEEDED,
        JobLifecycle.FAILED,
        JobLifecycle.CANCELED,
        JobLifecycle.TIMED_OUT,
    }
)

_ALLOWED_TRANSITIONS: dict[JobLifecycle, set[JobLifecycle]] = {
    JobLifecycle.QUEUED: {JobLifecycle.STARTING} | set(TERMINAL_STATES),
    JobLifecycle.STARTING: {JobLifecycle.STARTING, JobLifecycle.PROCESSING} | set(TERMINAL_STATES),
    JobLifecycle.PROCESSING: {JobLifecycle.PROCESSING} | set(TERMINAL_STATES),
    JobLifecycle.SUCCEEDED: set(),
    JobLifecycle.FAILED: set(),
    JobLifecycle.CANCELED: set(),
    JobLifecycle.TIMED_OUT: set(),
}


def is_terminal(state: JobLifecycle) -> bool:
    return state in TERMINAL_STATES


def allowed_next_states(state: JobLifecycle) -> list[JobLifecycle]:
    """Return deterministically ordered allowed successors for a state."""
    return sorted(_ALLOWED_TRANSITIONS.get(state, set()), key=lambda s: s.value)


def ensure_transition(old_state: JobLifecycle, new_state: JobLifecycle) -> None:
    """Validate transition according to lifecycle rules."""
    if old_state in TERMINAL_STATES:
        raise JobTransitionError(
            status_code=409,
            code="FSM_TERMINAL_IMMUTABLE",
            message="Terminal state cannot be mutated",
            details={
                "current_state": old_state,
                "attempted_state": new_state,
                "allowed_next_states": [],
            },
        )

    if new_state not in _ALLOWED_TRANSITIONS.get(old_state, set()):
        raise JobTransitionError(
            status_code=409,
            code="FSM_TRANSITION_INVALID",
            message="Invalid status transition",
            details={
                "current_state": old_state,
                "attempted_state": new_state,
                "allowed_next_states": allowed_next_states(old_state),
            },
        )


def map_remote_status(status: str, output: object) -> JobLifecycle:
    """Map a provider status to the local lifecycle.

    A provider success without output counts as a failure.
    """
    if status == RemoteStatus.SUCCEEDED.value:
        return JobLifecycle.SUCCEEDED if output else JobLifecycle.FAILED
    if status == RemoteStatus.FAILED.value:
        return JobLifecycle.FAILED
    if status == RemoteStatus.CANCELED.value:
        return JobLifecycle.CANCELED
    return JobLifecycle.PROCESSING
