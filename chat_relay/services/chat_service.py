"""
Chat service orchestrating the conversation flow:
- Validate the session identifier and prompt
- Persist the user turn
- Read the recent history as context
- Call the model gateway
- Persist and return the assistant reply
"""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack
from typing import List, Optional

from chat_relay.core.errors import ValidationError
from chat_relay.persistence.conversation_store import ConversationStore
from chat_relay.persistence.database import ConversationTurn
from chat_relay.persistence.redis_store import RedisSessionLock
from chat_relay.services.model_gateway import ModelGateway

logger = logging.getLogger("chat_service")

USER_ROLE = "user"
ASSISTANT_ROLE = "assistant"


def _require(value: Optional[str], field: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field} is required")
    return value


class ChatService:
    """
    High-level service that handles the end-to-end chat flow.
    Built once at startup; the store, gateway and optional lock are passed in.
    """

    def __init__(
        self,
        store: ConversationStore,
        gateway: ModelGateway,
        context_window: int,
        session_lock: Optional[RedisSessionLock] = None,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._context_window = context_window
        self._session_lock = session_lock

    async def ask(self, session_id: Optional[str], prompt: Optional[str]) -> str:
        """
        Main entry point to process a prompt and produce a reply.

        The user turn is not rolled back if the gateway call fails.
        """
        session_id = _require(session_id, "sessionId")
        prompt = _require(prompt, "prompt")

        async with AsyncExitStack() as stack:
            if self._session_lock is not None:
                await stack.enter_async_context(self._session_lock.hold(session_id))

            user_turn = await self._store.append(session_id, USER_ROLE, prompt)
            context = await self._context(session_id, exclude=user_turn)

            logger.info(
                "Session %s: sending prompt with %d context turns",
                session_id,
                len(context),
            )
            reply = await self._gateway.complete(context, prompt)

            await self._store.append(session_id, ASSISTANT_ROLE, reply)
            return reply

    async def history(self, session_id: Optional[str]) -> List[ConversationTurn]:
        """Return the whole session oldest first."""
        session_id = _require(session_id, "sessionId")
        return await self._store.fetch(session_id)

    async def clear(self, session_id: Optional[str]) -> int:
        """Remove every turn of the session."""
        session_id = _require(session_id, "sessionId")
        return await self._store.clear(session_id)

    async def _context(
        self,
        session_id: str,
        exclude: ConversationTurn,
    ) -> List[ConversationTurn]:
        # The new prompt travels separately, so the turn just written is left out
        # and one extra row is read to keep `context_window` prior turns
        limit = self._context_window + 1 if self._context_window else None
        turns = await self._store.fetch(session_id, limit=limit)
        context = [t for t in turns if t.sequence != exclude.sequence]
        if self._context_window:
            context = context[-self._context_window:]
        return context
