"""Storyboard and rendering routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, status

from app.repositories.memory import UserSession
from app.routes.dependencies import get_authenticated_principal, get_storyboard_service, get_user_session
from app.schemas.auth import AuthPrincipal
from app.schemas.error import ErrorResponse, InsufficientBalanceErrorPayload, NoLeakNotFoundError
from app.schemas.storyboard import (
    CreateStoryboardRequest,
    RenderBatchResult,
    RenderRequest,
    RenderSettings,
    Scene,
    Storyboard,
)
from app.services.storyboards import StoryboardService

router = APIRouter(prefix="/storyboards", tags=["Storyboards"])


def _render_settings(payload: RenderRequest | None) -> RenderSettings:
    return payload.settings if payload is not None else RenderSettings()


@router.post(
    "",
    response_model=Storyboard,
    status_code=status.HTTP_201_CREATED,
    responses={401: {"model": ErrorResponse}},
)
async def create_storyboard(
    payload: CreateStoryboardRequest,
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[StoryboardService, Depends(get_storyboard_service)],
) -> Storyboard:
    return service.create_storyboard(owner_id=principal.user_id, payload=payload)


@router.get(
    "/{storyboardId}",
    response_model=Storyboard,
    responses={401: {"model": ErrorResponse}, 404: {"model": NoLeakNotFoundError}},
)
async def get_storyboard(
    storyboard_id: Annotated[str, Path(alias="storyboardId")],
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[StoryboardService, Depends(get_storyboard_service)],
) -> Storyboard:
    return service.get_storyboard(owner_id=principal.user_id, storyboard_id=storyboard_id)


@router.post(
    "/{storyboardId}/render-images",
    response_model=RenderBatchResult,
    responses={401: {"model": ErrorResponse}, 404: {"model": NoLeakNotFoundError}},
)
async def render_images(
    storyboard_id: Annotated[str, Path(alias="storyboardId")],
    session: Annotated[UserSession, Depends(get_user_session)],
    service: Annotated[StoryboardService, Depends(get_storyboard_service)],
    payload: RenderRequest | None = None,
) -> RenderBatchResult:
    return await service.render_images(
        session=session,
        storyboard_id=storyboard_id,
        settings=_render_settings(payload),
    )


@router.post(
    "/{storyboardId}/render-videos",
    response_model=RenderBatchResult,
    responses={401: {"model": ErrorResponse}, 404: {"model": NoLeakNotFoundError}},
)
async def render_videos(
    storyboard_id: Annotated[str, Path(alias="storyboardId")],
    session: Annotated[UserSession, Depends(get_user_session)],
    service: Annotated[StoryboardService, Depends(get_storyboard_service)],
    payload: RenderRequest | None = None,
) -> RenderBatchResult:
    return await service.render_videos(
        session=session,
        storyboard_id=storyboard_id,
        settings=_render_settings(payload),
    )


@router.post(
    "/{storyboardId}/scenes/{sceneNumber}/render-video",
    response_model=Scene,
    responses={
        401: {"model": ErrorResponse},
        402: {"model": InsufficientBalanceErrorPayload},
        404: {"model": NoLeakNotFoundError},
    },
)
async def render_scene_video(
    storyboard_id: Annotated[str, Path(alias="storyboardId")],
    scene_number: Annotated[int, Path(alias="sceneNumber", ge=1)],
    session: Annotated[UserSession, Depends(get_user_session)],
    service: Annotated[StoryboardService, Depends(get_storyboard_service)],
    payload: RenderRequest | None = None,
) -> Scene:
    return await service.render_scene_video(
        session=session,
        storyboard_id=storyboard_id,
        scene_number=scene_number,
        settings=_render_settings(payload),
    )
