"""
Duplicate content detection by page content hash.
"""

import logging
from typing import Dict, Optional, Set

import redis.asyncio as redis


class DuplicateDetector:
    """
    Remembers content hashes of indexed pages.

    Hashes are kept in memory and, when a Redis client is given, in the
    Redis SET ``{namespace}:hashes`` so several crawler processes share them.

    ``PageDocument.hash`` covers the URL as well as the contents, so two URLs
    with identical text never collide. Since the link queue hands out a URL
    only once until it is reset, a duplicate shows up when the same URL is
    crawled again with unchanged contents after a queue reset, or by another
    crawler process sharing the hash set.
    """

    def __init__(self, redis_client: Optional[redis.Redis] = None, namespace: str = "crawler"):
        self.redis_client = redis_client
        self.namespace = namespace
        self.hashes_key = f"{namespace}:hashes"
        self.logger = logging.getLogger(__name__)

        # In-memory set used without Redis
        self.content_hashes: Set[str] = set()

        self.stats = {
            'total_checks': 0,
            'content_duplicates': 0
        }

    async def check_and_add(self, content_hash: str) -> bool:
        """
        Record ``content_hash`` and report whether it had been seen before.

        Returns:
            True if the hash was already known
        """
        self.stats['total_checks'] += 1

        if self.redis_client is not None:
            added = await self.redis_client.sadd(self.hashes_key, content_hash)
            seen = added == 0
        else:
            seen = content_hash in self.content_hashes
            self.content_hashes.add(content_hash)

        if seen:
            self.stats['content_duplicates'] += 1
            self.logger.debug(f"Duplicate content hash {content_hash}")
        return seen

    async def reset(self):
        """Forget every recorded hash."""
        self.content_hashes.clear()
        if self.redis_client is not None:
            await self.redis_client.delete(self.hashes_key)

    def get_stats(self) -> Dict[str, int]:
        """Get duplicate detection statistics."""
        return self.stats.copy()
