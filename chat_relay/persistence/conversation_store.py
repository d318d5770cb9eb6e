"""
Provide the conversation store: an append-only log of turns per session.
This layer isolates SQL details from services and endpoints, and turns
driver failures into StorageError.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import select, delete, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chat_relay.core.errors import StorageError
from chat_relay.persistence.database import ConversationTurn

logger = logging.getLogger("conversation_store")


class ConversationStore:
    """
    Wrap an async session factory and expose the operations needed by the service.
    The store does not own the engine's lifecycle; the application lifespan does.
    Every operation runs in its own short transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def append(self, session_id: str, role: str, message: str) -> ConversationTurn:
        """
        Persist a single turn and return it (with sequence and timestamp).
        """
        turn = ConversationTurn(session_id=session_id, role=role, message=message)
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(turn)
        except SQLAlchemyError as exc:
            logger.error("Failed to append %s turn for session %s: %s", role, session_id, exc)
            raise StorageError("conversation store unavailable") from exc
        logger.debug("Appended %s turn #%s for session %s", role, turn.sequence, session_id)
        return turn

    async def fetch(self, session_id: str, limit: Optional[int] = None) -> List[ConversationTurn]:
        """
        Return the turns of a session oldest first.
        With `limit`, only the most recent `limit` turns are returned, still oldest first.
        An unknown session yields an empty list.
        """
        stmt = select(ConversationTurn).where(ConversationTurn.session_id == session_id)
        if limit is None:
            stmt = stmt.order_by(ConversationTurn.sequence.asc())
        else:
            # Newest N descending, reversed to chronological below
            stmt = stmt.order_by(ConversationTurn.sequence.desc()).limit(limit)

        try:
            async with self._session_factory() as session:
                res = await session.execute(stmt)
                rows = list(res.scalars().all())
        except SQLAlchemyError as exc:
            logger.error("Failed to fetch history for session %s: %s", session_id, exc)
            raise StorageError("conversation store unavailable") from exc

        if limit is not None:
            rows.reverse()
        return rows

    async def clear(self, session_id: str) -> int:
        """
        Remove every turn of a session in one statement.
        Return the number of removed turns; clearing an empty session is not an error.
        """
        stmt = delete(ConversationTurn).where(ConversationTurn.session_id == session_id)
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    res = await session.execute(stmt)
        except SQLAlchemyError as exc:
            logger.error("Failed to clear session %s: %s", session_id, exc)
            raise StorageError("conversation store unavailable") from exc
        removed = res.rowcount or 0
        logger.info("Cleared %d turns for session %s", removed, session_id)
        return removed

    async def count(self, session_id: str) -> int:
        """
        Return total number of turns for a session.
        """
        stmt = select(func.count(ConversationTurn.sequence)).where(
            ConversationTurn.session_id == session_id
        )
        try:
            async with self._session_factory() as session:
                res = await session.execute(stmt)
                return int(res.scalar_one())
        except SQLAlchemyError as exc:
            logger.error("Failed to count turns for session %s: %s", session_id, exc)
            raise StorageError("conversation store unavailable") from exc
