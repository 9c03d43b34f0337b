from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from social_chat.api.middleware.request_log import RequestLogMiddleware
from social_chat.api.v1.routers import actions, health, ws
from social_chat.application.exceptions import NotFoundError, ValidationError
from social_chat.config import settings
from social_chat.infrastructure.auth.hs256_verifier import HS256Verifier
from social_chat.infrastructure.hub.registry import InMemoryChatRegistry, load_registry
from social_chat.infrastructure.ws.hub import ChatHub

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info("Chat hub started (require_token=%s)", settings.HUB_REQUIRE_TOKEN)
    yield
    logger.info("Chat hub stopped with %d clients attached", app.state.hub.client_count)


def create_app(registry: InMemoryChatRegistry | None = None) -> FastAPI:
    app = FastAPI(
        title="Social Chat Dev Hub",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.hub = ChatHub(registry or load_registry(settings.HUB_SEED_FILE))
    app.state.verifier = HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(RequestLogMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(actions.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": exc.detail})
