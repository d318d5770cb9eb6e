"""
Define SQLAlchemy ORM metadata and models.
This module does not create the engine nor the session; those are built by chat_relay.core.dependencies.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import String, Text, DateTime, Index, func
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Common declarative base for all ORM models."""
    pass


class ConversationTurn(Base):
    """
    Represent a single turn in a session's append-only log.
    Stores both user and assistant messages; `sequence` orders them by insertion.
    """
    __tablename__ = "chats"

    sequence: Mapped[int] = mapped_column("id", primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(String(16))
    message: Mapped[str] = mapped_column(Text())
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_chats_session_id_id", "session_id", "id"),
    )

    def __repr__(self) -> str:
        return f"ConversationTurn(session_id={self.session_id!r}, sequence={self.sequence}, role={self.role!r})"


async def init_models(engine: AsyncEngine) -> None:
    """
    Create database tables based on ORM metadata.
    Awaited during application startup, before any request is served.
    """
    if not isinstance(engine, AsyncEngine):
        raise TypeError("init_models expects an AsyncEngine")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
