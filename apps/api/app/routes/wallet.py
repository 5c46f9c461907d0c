"""Wallet and session routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from app.repositories.memory import UserSession
from app.routes.dependencies import get_authenticated_principal, get_session_service, get_user_session
from app.schemas.auth import AuthPrincipal
from app.schemas.error import ErrorResponse
from app.schemas.wallet import PurchaseCreditsRequest, UpgradePlanRequest, WalletView
from app.services.sessions import SessionService

router = APIRouter(tags=["Wallet"])


@router.get(
    "/wallet",
    response_model=WalletView,
    responses={401: {"model": ErrorResponse}},
)
async def get_wallet(
    session: Annotated[UserSession, Depends(get_user_session)],
    service: Annotated[SessionService, Depends(get_session_service)],
) -> WalletView:
    return service.wallet(session)


@router.post(
    "/wallet/purchase",
    response_model=WalletView,
    responses={401: {"model": ErrorResponse}},
)
async def purchase_credits(
    payload: PurchaseCreditsRequest,
    session: Annotated[UserSession, Depends(get_user_session)],
    service: Annotated[SessionService, Depends(get_session_service)],
) -> WalletView:
    return service.purchase(session, credits=payload.credits)


@router.post(
    "/wallet/upgrade",
    response_model=WalletView,
    responses={401: {"model": ErrorResponse}},
)
async def upgrade_plan(
    payload: UpgradePlanRequest,
    session: Annotated[UserSession, Depends(get_user_session)],
    service: Annotated[SessionService, Depends(get_session_service)],
) -> WalletView:
    return await service.upgrade(session, tier=payload.tier)


@router.delete(
    "/session",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={401: {"model": ErrorResponse}},
)
async def logout(
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[SessionService, Depends(get_session_service)],
) -> Response:
    await service.logout(principal.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
