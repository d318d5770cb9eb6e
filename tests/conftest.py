"""
Pytest fixtures and configuration for the test suite.

Sets up a per-test application with an isolated SQLite database and a stubbed
Gemini endpoint served by httpx.MockTransport, so no test touches the network.
"""

from __future__ import annotations

import json
import os
from typing import Callable, List

import fakeredis
import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from asgi_lifespan import LifespanManager

# Configure environment variables for test execution
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "false"
os.environ["GEMINI_API_KEY"] = "test-no-network"
os.environ.pop("REDIS_URL", None)

# Import the application after environment variables are set
from chat_relay.core.config import Settings
from chat_relay.core.dependencies import build_engine, build_session_factory
from chat_relay.main import create_app
from chat_relay.persistence.conversation_store import ConversationStore
from chat_relay.persistence.database import init_models

TEST_MODEL_REPLY = "TEST_MODEL_REPLY"


def gemini_body(text: str) -> dict:
    """Minimal successful generateContent response."""
    return {
        "candidates": [
            {"content": {"role": "model", "parts": [{"text": text}]}, "finishReason": "STOP"}
        ]
    }


class GeminiStub:
    """
    Stands in for the Gemini endpoint.
    Records every request; `respond` decides the response and may raise to simulate transport errors.
    """

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.respond: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(200, json=gemini_body(TEST_MODEL_REPLY))
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)

    @property
    def payloads(self) -> List[dict]:
        return [json.loads(r.content) for r in self.requests]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def gemini_stub() -> GeminiStub:
    return GeminiStub()


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a per-test SQLite file, ignoring any local .env."""
    return Settings(
        _env_file=None,
        environment="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'chat_history.db'}",
        gemini_api_key="test-no-network",
        context_window=10,
    )


@pytest_asyncio.fixture
async def store(settings):
    """A ConversationStore on a fresh database."""
    engine = build_engine(settings)
    await init_models(engine)
    try:
        yield ConversationStore(build_session_factory(engine))
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def test_client(settings, gemini_stub):
    """
    Provides an AsyncClient bound to the ASGI app for test execution.
    The app runs its real lifespan; only the Gemini HTTP transport is replaced.
    """
    http_client = gemini_stub.client()
    app = create_app(settings=settings, http_client=http_client)

    async with LifespanManager(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            try:
                yield client
            finally:
                await http_client.aclose()


@pytest.fixture
def redis_server() -> fakeredis.FakeServer:
    """In-process Redis server; set `connected = False` to simulate an outage."""
    return fakeredis.FakeServer()


@pytest_asyncio.fixture
async def redis_client(redis_server):
    client = fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)
    try:
        yield client
    finally:
        await client.aclose()


@pytest_asyncio.fixture
async def locked_client(settings, gemini_stub, redis_client):
    """
    Like test_client, with the per-session Redis lock enabled and a short wait budget.
    """
    settings = settings.model_copy(update={"session_lock_wait_seconds": 0.2})
    http_client = gemini_stub.client()
    app = create_app(settings=settings, http_client=http_client, redis_client=redis_client)

    async with LifespanManager(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            try:
                yield client
            finally:
                await http_client.aclose()
