"""
FastAPI application entry point.

Configures application lifespan, logging, error handlers, health check, and API routes.
Database tables are created during startup and awaited before the first request is served.
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as SettingsError
from redis.asyncio import Redis

from chat_relay.api.endpoints import router
from chat_relay.core.config import Settings, get_settings
from chat_relay.core.dependencies import build_engine, build_redis, build_session_factory
from chat_relay.core.errors import ChatRelayError
from chat_relay.persistence.conversation_store import ConversationStore
from chat_relay.persistence.database import init_models
from chat_relay.persistence.redis_store import RedisSessionLock
from chat_relay.services.chat_service import ChatService
from chat_relay.services.model_gateway import ModelGateway

logger = logging.getLogger("chat_relay")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context.

    Configures logging, opens the store, the model gateway and the optional Redis
    lock, and wires them into the ChatService. Closes them on shutdown.
    """
    settings: Settings = app.state.settings
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    engine = build_engine(settings)
    await init_models(engine)

    gateway = ModelGateway(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        base_url=settings.gemini_base_url,
        timeout_seconds=settings.gemini_timeout_seconds,
        system_prompt=settings.system_prompt,
        temperature=settings.gemini_temperature,
        max_output_tokens=settings.gemini_max_output_tokens,
        http_client=app.state.http_client,
    )

    redis = app.state.redis_client
    owns_redis = redis is None
    if owns_redis:
        redis = build_redis(settings)
    session_lock = None
    if redis is not None:
        session_lock = RedisSessionLock(
            redis,
            ttl_seconds=settings.session_lock_ttl_seconds,
            wait_seconds=settings.session_lock_wait_seconds,
        )

    app.state.chat_service = ChatService(
        store=ConversationStore(build_session_factory(engine)),
        gateway=gateway,
        context_window=settings.context_window,
        session_lock=session_lock,
    )
    logger.info(
        "Chat relay ready: model=%s context_window=%s session_lock=%s",
        settings.gemini_model,
        settings.context_window or "all",
        session_lock is not None,
    )

    try:
        yield
    finally:
        await gateway.aclose()
        if owns_redis and redis is not None:
            await redis.aclose()
        await engine.dispose()


async def _chat_relay_error_handler(request: Request, exc: ChatRelayError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
    )
    logger.info("Rejected %s %s: %s", request.method, request.url.path, details)
    return JSONResponse(status_code=400, content={"error": f"invalid request: {details}"})


def create_app(
    settings: Optional[Settings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    redis_client: Optional[Redis] = None,
) -> FastAPI:
    """
    Creates and configures the FastAPI application instance.
    `http_client` replaces the gateway's own HTTP client and `redis_client` the one
    built from REDIS_URL; the caller then owns them.
    """
    settings = settings or get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.state.http_client = http_client
    app.state.redis_client = redis_client

    app.add_exception_handler(ChatRelayError, _chat_relay_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)

    @app.get("/health")
    def health():
        """Simple health check endpoint."""
        return {"status": "ok"}

    app.include_router(router)
    return app


def run() -> None:
    """Console entry point: validate configuration, then serve on the configured port."""
    try:
        settings = get_settings()
    except SettingsError as exc:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
        logger.critical("Invalid configuration, refusing to start: %s", exc)
        sys.exit(1)

    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
