"""Per-key asyncio locks serializing read-modify-write cycles on one record."""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional


class KeyedLocks:
    """
    Registry of asyncio locks keyed by record id.

    Multi-key holds acquire in sorted order so two operations touching the
    same pair of tables cannot deadlock. A key's lock lives only while some
    holder or waiter uses it; the registry is empty when nothing is locked.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def _checkout(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
            self._users[key] = 0
        self._users[key] += 1
        return lock

    def _checkin(self, key: str) -> None:
        self._users[key] -= 1
        if self._users[key] == 0:
            del self._users[key]
            del self._locks[key]

    def users(self, key: str) -> int:
        """Holders plus waiters of a key."""
        return self._users.get(key, 0)

    def locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, *keys: Optional[str]) -> AsyncIterator[None]:
        ordered = sorted({key for key in keys if key is not None})
        checked_out: List[str] = []
        acquired: List[asyncio.Lock] = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                checked_out.append(key)
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for key in checked_out:
                self._checkin(key)
