"""Utilities for safe structured logging fields."""

from __future__ import annotations

import hashlib
from typing import Any

_MAX_REASON_LENGTH = 200


def safe_log_identifier(value: Any, *, prefix: str) -> str:
    """Return a deterministic non-reversible token for user and job identifiers."""
    text = str(value or "").strip()
    if not text:
        return f"{prefix}-missing"

    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()[:12]
    return f"{prefix}-{digest}"


def safe_log_reason(value: Any, *, limit: int = _MAX_REASON_LENGTH) -> str:
    """Collapse raw provider error text onto one bounded log line."""
    text = " ".join(str(value or "").split())
    if not text:
        return "unknown"
    if len(text) > limit:
        return f"{text[:limit]}..."
    return text
