"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from app.core.config import Settings, get_settings
from app.errors import ApiError
from app.repositories.memory import InMemoryStore
from app.routes import storyboards_router, wallet_router
from app.routes.dependencies import build_generation_provider, build_remote_ledger
from app.services.ledger_sync import LedgerSync

logger = logging.getLogger(__name__)


async def _shutdown(app: FastAPI) -> None:
    store: InMemoryStore = app.state.store
    for runtime in list(store.runtimes.values()):
        await runtime.poller.stop()
    await app.state.ledger_sync.drain()
    await app.state.provider.aclose()
    await app.state.ledger.aclose()
    logger.info("app.stopped pollers=%s sessions=%s", len(store.runtimes), len(store.sessions))


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await _shutdown(app)

    app = FastAPI(title="Framecast API", version="0.4.0", lifespan=lifespan)
    app.state.store = InMemoryStore()
    app.state.provider = build_generation_provider(settings)
    app.state.ledger = build_remote_ledger(settings)
    app.state.ledger_sync = LedgerSync(app.state.ledger)

    @app.exception_handler(ApiError)
    async def handle_api_error(_, exc: ApiError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.payload.model_dump(mode="json", exclude_none=True),
        )

    @app.get("/health", tags=["Health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    api_prefix = "/api/v1"
    app.include_router(wallet_router, prefix=api_prefix)
    app.include_router(storyboards_router, prefix=api_prefix)

    return app
