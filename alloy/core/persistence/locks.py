"""
Keyed locks — one asyncio.Lock per bottle identifier.

Guards read-modify-write sequences on a single bottle's metadata
(recipe application, deletion) without serializing unrelated bottles.
Entries are dropped once nobody holds or waits on them.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)


class KeyedLocks:
    """Table of mutual-exclusion scopes keyed by string."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def locked(self, key: object) -> bool:
        lock = self._locks.get(str(key))
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, key: object) -> AsyncIterator[None]:
        """Hold the lock for ``key`` for the duration of the block."""
        name = str(key)
        lock = self._locks.setdefault(name, asyncio.Lock())
        self._users[name] = self._users.get(name, 0) + 1
        try:
            if lock.locked():
                logger.debug("Waiting for lock on %s", name)
            async with lock:
                yield
        finally:
            self._users[name] -= 1
            if self._users[name] == 0:
                del self._users[name]
                del self._locks[name]
