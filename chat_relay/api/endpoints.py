"""
Chat API endpoint definitions.

Provides /ask-ai to relay a prompt to the model, /history to read a session's
turns and /clear to remove them. Errors raised by the service are rendered
by the handlers registered in chat_relay.main.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from chat_relay.core.dependencies import get_chat_service
from chat_relay.models.schemas import (
    AskRequest,
    AskResponse,
    ClearRequest,
    ClearResponse,
    ErrorResponse,
    HistoryItem,
)
from chat_relay.services.chat_service import ChatService

router = APIRouter(
    tags=["chat"],
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)


@router.post("/ask-ai", response_model=AskResponse)
async def ask_ai(
    payload: AskRequest,
    service: ChatService = Depends(get_chat_service),
) -> AskResponse:
    """
    Processes a chat turn.

    Workflow:
    - Persists the prompt as a user turn.
    - Sends the recent history plus the prompt to the model.
    - Persists and returns the reply.
    """
    reply = await service.ask(payload.session_id, payload.prompt)
    return AskResponse(reply=reply)


@router.get("/history", response_model=List[HistoryItem])
async def history(
    session_id: Optional[str] = Query(default=None, alias="sessionId"),
    service: ChatService = Depends(get_chat_service),
) -> List[HistoryItem]:
    """Returns every turn of the session, oldest first."""
    turns = await service.history(session_id)
    return [HistoryItem.model_validate(t) for t in turns]


@router.delete("/clear", response_model=ClearResponse)
async def clear(
    payload: ClearRequest,
    service: ChatService = Depends(get_chat_service),
) -> ClearResponse:
    """Removes every turn of the session; clearing an empty session succeeds."""
    await service.clear(payload.session_id)
    return ClearResponse(success=True)
