"""
Provide an optional Redis-backed lock that serializes requests of the same session.

Without it, two concurrent requests for one session may interleave their
append and fetch steps. The lock is redis-py's token-checked Lock; while it
is held, a background task keeps resetting its TTL so a slow model call
cannot outlive it. A crashed holder still releases it when the TTL expires.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from redis.asyncio import Redis
from redis.asyncio.lock import Lock
from redis.exceptions import LockError, RedisError

from chat_relay.core.errors import SessionBusyError, StorageError

logger = logging.getLogger("session_lock")


class RedisSessionLock:
    """
    Wrap a Redis asyncio client and expose a per-session lock.
    The lock does not own the client's lifecycle; caller is responsible for creation.
    """

    def __init__(
        self,
        client: Redis,
        ttl_seconds: float = 60,
        wait_seconds: float = 5.0,
    ) -> None:
        self._client = client
        self._ttl_seconds = ttl_seconds
        self._wait_seconds = wait_seconds

    @staticmethod
    def _lock_key(session_id: str) -> str:
        return f"lock:session:{session_id}"

    def _new_lock(self, session_id: str) -> Lock:
        return self._client.lock(
            self._lock_key(session_id),
            timeout=self._ttl_seconds,
            blocking_timeout=self._wait_seconds,
            thread_local=False,
        )

    async def _keep_alive(self, lock: Lock, session_id: str) -> None:
        """Reset the TTL every third of it until cancelled."""
        interval = self._ttl_seconds / 3
        while True:
            await asyncio.sleep(interval)
            try:
                await lock.reacquire()
            except LockError:
                logger.warning("Lock for session %s was lost before the request finished", session_id)
                return
            except RedisError as exc:
                logger.error("Failed to extend lock for session %s: %s", session_id, exc)
                return

    async def _release(self, lock: Lock, session_id: str) -> None:
        # The reply is already stored at this point, so failures are logged only
        try:
            await lock.release()
        except LockError:
            logger.warning("Lock for session %s expired before release", session_id)
        except RedisError as exc:
            logger.error("Failed to release lock for session %s: %s", session_id, exc)

    @asynccontextmanager
    async def hold(self, session_id: str) -> AsyncIterator[None]:
        """
        Hold the session lock for the duration of the block.
        Raises SessionBusyError when the wait budget is spent and
        StorageError when Redis cannot be reached.
        """
        lock = self._new_lock(session_id)
        try:
            acquired = await lock.acquire()
        except RedisError as exc:
            logger.error("Session lock unavailable for session %s: %s", session_id, exc)
            raise StorageError("session lock unavailable") from exc

        if not acquired:
            logger.warning("Session %s still locked after %.1fs", session_id, self._wait_seconds)
            raise SessionBusyError(f"session {session_id} is busy, retry later")

        keeper = asyncio.create_task(self._keep_alive(lock, session_id))
        try:
            yield
        finally:
            keeper.cancel()
            try:
                await keeper
            except asyncio.CancelledError:
                pass
            await self._release(lock, session_id)
