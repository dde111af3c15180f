"""
Per-search locks that keep two workers from processing the same saved search
in the same tick. Acquisition never blocks: a held lock means skip.
"""
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Set
import threading

import redis.asyncio as redis
from redis.exceptions import LockError

from housing_trends.core.config import settings
import logging

logger = logging.getLogger(__name__)


class SearchLockManager(ABC):

    @abstractmethod
    def hold(self, search_id: str):
        """Async context manager yielding True when the lock was acquired"""
        raise NotImplementedError


class LocalLockManager(SearchLockManager):
    """In-process locks for a single scheduler process"""

    def __init__(self):
        self._guard = threading.Lock()
        self._held: Set[str] = set()

    def _try_acquire(self, search_id: str) -> bool:
        with self._guard:
            if search_id in self._held:
                return False
            self._held.add(search_id)
            return True

    def _release(self, search_id: str):
        with self._guard:
            self._held.discard(search_id)

    def is_held(self, search_id: str) -> bool:
        with self._guard:
            return search_id in self._held

    @asynccontextmanager
    async def hold(self, search_id: str) -> AsyncIterator[bool]:
        acquired = self._try_acquire(search_id)
        try:
            yield acquired
        finally:
            if acquired:
                self._release(search_id)


class RedisLockManager(SearchLockManager):
    """Redis locks shared by every scheduler worker; the TTL bounds a crashed holder"""

    def __init__(self, client: redis.Redis, ttl_seconds: int = 300, prefix: str = "saved-search-lock"):
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str = None, ttl_seconds: int = None) -> "RedisLockManager":
        client = redis.from_url(url or settings.REDIS_URL, decode_responses=True)
        return cls(client, ttl_seconds or settings.NOTIFICATION_LOCK_TTL_SECONDS)

    @asynccontextmanager
    async def hold(self, search_id: str) -> AsyncIterator[bool]:
        lock = self.client.lock(
            f"{self.prefix}:{search_id}",
            timeout=self.ttl_seconds,
            blocking=False
        )
        acquired = await lock.acquire()
        try:
            yield acquired
        finally:
            if acquired:
                try:
                    await lock.release()
                except LockError as e:
                    # The TTL expired while we were still working
                    logger.warning(f"Lock for saved search {search_id} was lost before release: {e}")
