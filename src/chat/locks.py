"""Per-conversation mutual exclusion."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict


class KeyedLock:
    """One ``asyncio.Lock`` per key, created on demand.

    A key's lock is dropped once nobody holds or waits for it, so the table
    only ever holds conversations with a send in flight. Different keys never
    block each other.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._refs: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def is_locked(self, key) -> bool:
        lock = self._locks.get(str(key))
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, key) -> AsyncIterator[None]:
        key = str(key)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._refs[key] = self._refs.get(key, 0) + 1

        try:
            async with lock:
                yield
        finally:
            self._refs[key] -= 1
            if self._refs[key] == 0:
                del self._refs[key]
                del self._locks[key]
