"""Dependency wiring for routes."""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import uuid4

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.adapters.auth import (
    AuthVerificationError,
    MockTokenVerifier,
    SupabaseTokenVerifier,
    TokenVerifier,
)
from app.adapters.generation import GenerationProvider, MockGenerationProvider, ReplicateProvider
from app.adapters.ledger import InMemoryLedger, RemoteLedger, SupabaseLedger
from app.core.config import Settings, get_settings
from app.core.logging_safety import safe_log_identifier
from app.errors import ApiError
from app.repositories.memory import InMemoryStore, UserSession
from app.schemas.auth import AuthPrincipal
from app.services.ledger_sync import LedgerSync
from app.services.sessions import SessionService
from app.services.storyboards import StoryboardService

bearer_scheme = HTTPBearer(auto_error=False, scheme_name="bearerAuth")
logger = logging.getLogger(__name__)


def _auth_error(message: str) -> ApiError:
    return ApiError(status_code=401, code="UNAUTHORIZED", message=message)


def _request_correlation_id(request: Request) -> str:
    existing = getattr(request.state, "correlation_id", None)
    if isinstance(existing, str) and existing:
        return existing

    correlation_id = request.headers.get("X-Correlation-Id")
    if correlation_id:
        request.state.correlation_id = correlation_id
        return correlation_id

    generated = f"req-{uuid4()}"
    request.state.correlation_id = generated
    return generated


def build_generation_provider(settings: Settings) -> GenerationProvider:
    """Resolve the generation adapter from configuration."""
    if settings.generation_provider == "replicate":
        return ReplicateProvider(
            api_token=settings.replicate_api_token,
            api_base=settings.replicate_api_base,
            timeout_seconds=settings.request_timeout_seconds,
            image_poll_interval_seconds=settings.image_poll_interval_seconds,
        )
    return MockGenerationProvider()


def build_remote_ledger(settings: Settings) -> RemoteLedger:
    """Resolve the ledger adapter from configuration."""
    if settings.ledger_provider == "supabase":
        return SupabaseLedger(
            url=settings.supabase_url,
            service_key=settings.supabase_service_key,
            timeout_seconds=settings.request_timeout_seconds,
        )
    return InMemoryLedger(default_credits=settings.default_credits)


def get_token_verifier(settings: Annotated[Settings, Depends(get_settings)]) -> TokenVerifier:
    """Resolve provider adapter from configuration."""
    if settings.auth_provider == "supabase":
        return SupabaseTokenVerifier(
            url=settings.supabase_url,
            api_key=settings.supabase_service_key,
            timeout_seconds=settings.request_timeout_seconds,
        )
    return MockTokenVerifier()


async def get_authenticated_principal(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    verifier: Annotated[TokenVerifier, Depends(get_token_verifier)],
) -> AuthPrincipal:
    """Validate bearer token and attach normalized principal to request context."""
    correlation_id = _request_correlation_id(request)
    safe_correlation_id = safe_log_identifier(correlation_id, prefix="cid")
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        logger.warning(
            "auth.rejected correlation_id=%s method=%s path=%s reason=invalid_or_missing_bearer",
            safe_correlation_id,
            request.method,
            request.url.path,
        )
        raise _auth_error("Invalid or missing bearer token")

    try:
        principal = await verifier.verify_token(credentials.credentials)
    except AuthVerificationError as exc:
        logger.warning(
            "auth.rejected correlation_id=%s method=%s path=%s reason=token_verification_failed",
            safe_correlation_id,
            request.method,
            request.url.path,
        )
        raise _auth_error(str(exc) or "Invalid bearer token") from exc

    logger.info(
        "auth.accepted correlation_id=%s method=%s path=%s principal_id=%s role=%s",
        safe_correlation_id,
        request.method,
        request.url.path,
        safe_log_identifier(principal.user_id, prefix="pid"),
        principal.role,
    )
    request.state.auth_principal = principal
    return principal


def get_store(request: Request) -> InMemoryStore:
    return request.app.state.store


def get_session_service(
    request: Request,
    store: Annotated[InMemoryStore, Depends(get_store)],
) -> SessionService:
    ledger: RemoteLedger = request.app.state.ledger
    sync: LedgerSync = request.app.state.ledger_sync
    return SessionService(store, ledger, sync)


def get_storyboard_service(
    request: Request,
    store: Annotated[InMemoryStore, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> StoryboardService:
    provider: GenerationProvider = request.app.state.provider
    return StoryboardService(store, provider, settings)


async def get_user_session(
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[SessionService, Depends(get_session_service)],
) -> UserSession:
    return await service.establish(principal)
