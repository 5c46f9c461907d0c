"""Application exception types."""

from app.schemas.error import ErrorResponse


class ApiError(Exception):
    """Structured API error that maps directly to contract error payloads."""

    def __init__(self, status_code: int, code: str, message: str, details: dict | None = None) -> None:
        self.status_code = status_code
        self.payload = ErrorResponse(code=code, message=message, details=details)
        super().__init__(message)


class InsufficientBalanceError(ApiError):
    """Raised when a paid step cannot be afforded from the current balance."""

    def __init__(self, *, required: int, available: int) -> None:
        self.required = required
        self.available = available
        super().__init__(
            status_code=402,
            code="INSUFFICIENT_BALANCE",
            message="Not enough credits for this operation.",
            details={"required": required, "available": available},
        )


class JobTransitionError(ApiError):
    """Raised when a job lifecycle mutation violates the transition rules."""


class ExternalSubmissionError(Exception):
    """The generation provider rejected or failed a submission.

    The message carries raw provider text and must never reach end users.
    """


class PollingError(Exception):
    """A transient failure while querying a job's remote status."""


class LedgerSyncError(Exception):
    """The remote ledger rejected or failed a balance write."""


__all__ = [
    "ApiError",
    "ExternalSubmissionError",
    "InsufficientBalanceError",
    "JobTransitionError",
    "LedgerSyncError",
    "PollingError",
]
