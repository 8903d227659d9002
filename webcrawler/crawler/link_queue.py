"""
Link queue (crawl frontier) implementations.
Deduplicated FIFO of URLs awaiting processing, backed either by process
memory or by Redis for sharing across processes.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import deque
from typing import Deque, Optional, Set

import redis.asyncio as redis

from ..errors import ConfigurationError

LOCAL = "local"
SHARED = "shared"


class LinkQueue(ABC):
    """
    Deduplicated FIFO of URLs.

    A URL accepted once is never emitted again until ``reset()``; ``dequeue``
    does not forget membership.
    """

    @abstractmethod
    async def enqueue(self, url: Optional[str]) -> bool:
        """Add a URL. Returns True if it was accepted, False if blank or already seen."""
        raise NotImplementedError

    @abstractmethod
    async def dequeue(self) -> Optional[str]:
        """Pop the next URL without blocking. Returns None when empty."""
        raise NotImplementedError

    @abstractmethod
    async def reset(self):
        """Clear both pending URLs and membership tracking."""
        raise NotImplementedError

    @abstractmethod
    async def size(self) -> int:
        """Number of URLs still waiting to be dequeued."""
        raise NotImplementedError


class LocalLinkQueue(LinkQueue):
    """
    In-process link queue.

    A lock guards the deque and the seen-set together, so membership and
    emission order cannot diverge between tasks or threads.
    """

    def __init__(self):
        self._queue: Deque[str] = deque()
        self._seen: Set[str] = set()
        self._lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

    async def enqueue(self, url: Optional[str]) -> bool:
        if url is None or not url.strip():
            return False
        with self._lock:
            if url in self._seen:
                return False
            self._seen.add(url)
            self._queue.append(url)
        self.logger.debug(f"Enqueued URL: {url}")
        return True

    async def dequeue(self) -> Optional[str]:
        with self._lock:
            if not self._queue:
                return None
            return self._queue.popleft()

    async def reset(self):
        with self._lock:
            self._queue.clear()
            self._seen.clear()
        self.logger.info("Local link queue reset")

    async def size(self) -> int:
        with self._lock:
            return len(self._queue)


ENQUEUE_SCRIPT = """
if redis.call('SADD', KEYS[1], ARGV[1]) == 1 then
    redis.call('RPUSH', KEYS[2], ARGV[1])
    return 1
end
return 0
"""


class RedisLinkQueue(LinkQueue):
    """
    Redis-backed link queue shared across processes.

    Uses a SET ``{namespace}:seen`` for deduplication and a LIST
    ``{namespace}:queue`` for ordering. The membership check and the push run
    as one Lua script, so a URL is never recorded as seen without being queued.
    """

    def __init__(self, redis_client: redis.Redis, namespace: str = "crawler"):
        if not namespace or not namespace.strip():
            namespace = "crawler"
        self.redis_client = redis_client
        self.namespace = namespace
        self.seen_key = f"{namespace}:seen"
        self.queue_key = f"{namespace}:queue"
        self._enqueue_script = redis_client.register_script(ENQUEUE_SCRIPT)
        self.logger = logging.getLogger(__name__)

    async def enqueue(self, url: Optional[str]) -> bool:
        if url is None or not url.strip():
            return False
        added = await self._enqueue_script(keys=[self.seen_key, self.queue_key], args=[url])
        if not added:
            return False
        self.logger.debug(f"Enqueued URL: {url}")
        return True

    async def dequeue(self) -> Optional[str]:
        item = await self.redis_client.lpop(self.queue_key)
        if item is None:
            return None
        if isinstance(item, bytes):
            return item.decode('utf-8')
        return item

    async def reset(self):
        await self.redis_client.delete(self.queue_key, self.seen_key)
        self.logger.info(f"Redis link queue reset (namespace={self.namespace})")

    async def size(self) -> int:
        return await self.redis_client.llen(self.queue_key)


def create_link_queue(queue_type: Optional[str] = LOCAL,
                      redis_client: Optional[redis.Redis] = None,
                      namespace: str = "crawler") -> LinkQueue:
    """Select the link queue backing from configuration."""
    kind = (queue_type or LOCAL).strip().lower()
    if kind == LOCAL:
        return LocalLinkQueue()
    if kind == SHARED:
        if redis_client is None:
            raise ConfigurationError("Shared link queue requires a Redis connection")
        return RedisLinkQueue(redis_client, namespace)
    raise ConfigurationError(f"Unknown frontier type: {queue_type}")
