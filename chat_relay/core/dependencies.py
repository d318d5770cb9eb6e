"""
Provide builders for the process-wide resources and the FastAPI dependency that exposes them.
Resources are created once by the application lifespan and kept on app.state;
nothing here holds module-level state.
"""

from typing import Optional

from fastapi import Request
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from chat_relay.core.config import Settings
from chat_relay.services.chat_service import ChatService


def build_engine(settings: Settings) -> AsyncEngine:
    """Build the async engine for the configured database URL."""
    return create_async_engine(
        settings.database_url,
        echo=settings.debug,
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Session factory for the conversation store.
    expire_on_commit=False keeps returned turns readable after their transaction ends.
    """
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
        autoflush=False,
        class_=AsyncSession,
    )


def build_redis(settings: Settings) -> Optional[Redis]:
    """
    Return a Redis client when REDIS_URL is configured, None otherwise.
    Use decode_responses=True to work with str keys/values by default.
    """
    if not settings.redis_url:
        return None
    return Redis.from_url(settings.redis_url, decode_responses=True)


def get_chat_service(request: Request) -> ChatService:
    """Return the ChatService built at startup."""
    return request.app.state.chat_service
