"""Authentication schemas."""

from pydantic import BaseModel, Field


class AuthPrincipal(BaseModel):
    """Normalized authenticated principal used by business services.

    ``role`` is ``admin`` for operator accounts, which spend without limit.
    """

    user_id: str = Field(min_length=1)
    role: str = Field(default="member", min_length=1)
