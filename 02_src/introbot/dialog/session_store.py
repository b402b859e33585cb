"""In-memory store of per-user dialog sessions."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from ..models import DialogSession


class SessionStore:
    """Maps user id to the active DialogSession.

    get/put/remove never await. Handlers serialize work on one user with
    ``async with store.lock(user_id)``; different users never share a lock.
    """

    def __init__(self):
        self._sessions: dict[int, DialogSession] = {}
        self._locks: dict[int, asyncio.Lock] = {}
        self._lock_users: dict[int, int] = {}  # user_id -> holders + waiters

    def get(self, user_id: int) -> DialogSession | None:
        return self._sessions.get(user_id)

    def put(self, user_id: int, session: DialogSession) -> None:
        self._sessions[user_id] = session

    def remove(self, user_id: int) -> None:
        self._sessions.pop(user_id, None)

    def clear(self) -> None:
        self._sessions.clear()

    def __contains__(self, user_id: int) -> bool:
        return user_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    @asynccontextmanager
    async def lock(self, user_id: int) -> AsyncIterator[None]:
        """Hold the per-user lock for the duration of the block."""
        user_lock = self._locks.get(user_id)
        if user_lock is None:
            user_lock = self._locks[user_id] = asyncio.Lock()
        self._lock_users[user_id] = self._lock_users.get(user_id, 0) + 1
        try:
            async with user_lock:
                yield
        finally:
            self._lock_users[user_id] -= 1
            if self._lock_users[user_id] == 0:
                del self._lock_users[user_id]
                del self._locks[user_id]
