"""API error response schemas."""

from typing import Any
from typing import Literal

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None


class NoLeakNotFoundError(BaseModel):
    code: Literal["RESOURCE_NOT_FOUND"]
    message: str


class InsufficientBalanceErrorDetails(BaseModel):
    required: int
    available: int


class InsufficientBalanceErrorPayload(BaseModel):
    code: Literal["INSUFFICIENT_BALANCE"]
    message: str
    details: InsufficientBalanceErrorDetails
