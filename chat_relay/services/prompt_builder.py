"""
Payload builder for the Gemini generateContent endpoint.

Consumes:
- The ordered history of a session (oldest first)
- The new user prompt
- Optional system instruction and generation settings

Produces:
- The JSON body expected by the provider, one `contents` entry per turn.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Sequence


class TurnLike(Protocol):
    role: str
    message: str


# Stored roles -> provider roles
_PROVIDER_ROLES = {
    "user": "user",
    "assistant": "model",
    "model": "model",
}


def to_provider_role(role: str) -> str:
    """Map a stored role to the provider's vocabulary; unknown roles are sent as user text."""
    return _PROVIDER_ROLES.get((role or "").strip().lower(), "user")


def build_content(role: str, text: str) -> Dict[str, Any]:
    return {"role": to_provider_role(role), "parts": [{"text": text}]}


def build_contents(history: Sequence[TurnLike], prompt: str) -> List[Dict[str, Any]]:
    """
    Builds the `contents` array: every history turn in order, then the new prompt as a user turn.
    Turns with an empty message are skipped since the provider rejects empty parts.
    """
    contents: List[Dict[str, Any]] = []
    for turn in history:
        if not (turn.message or "").strip():
            continue
        contents.append(build_content(turn.role, turn.message))

    contents.append(build_content("user", prompt))
    return contents


def build_payload(
    history: Sequence[TurnLike],
    prompt: str,
    system_prompt: Optional[str] = None,
    temperature: Optional[float] = None,
    max_output_tokens: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Builds the complete request body.
    `systemInstruction` and `generationConfig` are only included when configured.
    """
    payload: Dict[str, Any] = {"contents": build_contents(history, prompt)}

    if system_prompt:
        payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}

    generation_config: Dict[str, Any] = {}
    if temperature is not None:
        generation_config["temperature"] = temperature
    if max_output_tokens is not None:
        generation_config["maxOutputTokens"] = max_output_tokens
    if generation_config:
        payload["generationConfig"] = generation_config

    return payload
