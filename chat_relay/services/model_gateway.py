"""
Gemini generateContent client wrapper.
Encapsulates request/response logic and timeouts. Content-shape anomalies
fall back to a fixed reply; transport and status failures raise GatewayError.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import httpx

from chat_relay.core.errors import GatewayError
from chat_relay.services.prompt_builder import TurnLike, build_payload

logger = logging.getLogger("model_gateway")

FALLBACK_REPLY = "Sorry, I couldn't generate a response."
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


def extract_reply(data: Any) -> Optional[str]:
    """
    Return the text of the first candidate's first content part, or None
    when the response does not have that shape.
    """
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    if not isinstance(text, str) or not text:
        return None
    return text


class ModelGateway:
    """
    Thin async wrapper around Gemini generateContent.
    Allows setting model, system instruction, generation settings and per-call timeout.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-pro",
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 30.0,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not api_key:
            raise ValueError("GEMINI_API_KEY must be provided")
        self._api_key = api_key
        self._model = model
        self._url = f"{base_url.rstrip('/')}/models/{model}:generateContent"
        self._timeout_seconds = timeout_seconds
        self._system_prompt = system_prompt
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    async def complete(self, history: Sequence[TurnLike], prompt: str) -> str:
        """
        Send the history plus the new prompt in one call and return the reply text.
        Returns FALLBACK_REPLY if the provider answers with no usable candidate.
        Raises GatewayError on transport errors, timeouts and non-success statuses.
        """
        payload = build_payload(
            history,
            prompt,
            system_prompt=self._system_prompt,
            temperature=self._temperature,
            max_output_tokens=self._max_output_tokens,
        )
        logger.debug("Calling %s with %d content entries", self._model, len(payload["contents"]))

        try:
            resp = await self._client.post(
                self._url,
                params={"key": self._api_key},
                json=payload,
                timeout=self._timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            logger.error("Model request timed out after %ss", self._timeout_seconds)
            raise GatewayError("AI request timed out") from exc
        except httpx.HTTPError as exc:
            logger.error("Model request failed: %s", exc)
            raise GatewayError("AI request failed") from exc

        if not resp.is_success:
            logger.error(
                "Model request returned status %s: %s",
                resp.status_code,
                resp.text[:500],
            )
            raise GatewayError(f"AI request failed with status {resp.status_code}")

        try:
            data = resp.json()
        except ValueError:
            logger.warning("Model response is not JSON; using fallback reply")
            return FALLBACK_REPLY

        reply = extract_reply(data)
        if reply is None:
            logger.warning("Model response has no usable candidate; using fallback reply")
            return FALLBACK_REPLY
        return reply

    async def aclose(self) -> None:
        """Close the underlying HTTP client when this gateway created it."""
        if self._owns_client:
            await self._client.aclose()
