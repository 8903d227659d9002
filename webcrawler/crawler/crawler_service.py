"""
Breadth-first link discovery feeding the link queue.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional, Set, Tuple

from ..errors import ParseError
from ..models import PageDocument
from ..utils.config import CrawlerConfig
from ..utils.monitoring import CrawlerMetrics
from .fetcher import WebFetcher
from .link_queue import LinkQueue
from .parser import ContentParser
from .url_utils import compile_patterns, is_accepted, normalize_url


@dataclass
class CrawlResult:
    """Outcome of one traversal."""
    entry_url: Optional[str] = None
    pages_fetched: int = 0
    links_enqueued: int = 0
    failures: int = 0
    pool_started: bool = False
    completed: Optional[bool] = None


class CrawlerService:
    """
    Walks links breadth-first from an entry URL up to ``max_depth`` and pushes
    every accepted link into the link queue.

    When a ProcessorManager is wired the entry URL is queued too and the pool
    is started afterwards to process the queued pages. Without one the service
    only discovers links.
    """

    def __init__(self, link_queue: LinkQueue, config: CrawlerConfig,
                 processor_manager=None,
                 fetcher: Optional[WebFetcher] = None,
                 sink=None,
                 parser: Optional[ContentParser] = None,
                 metrics: Optional[CrawlerMetrics] = None):
        self.link_queue = link_queue
        self.config = config
        self.processor_manager = processor_manager
        self.fetcher = fetcher
        self.sink = sink or self._log_document
        self.parser = parser or ContentParser()
        self.metrics = metrics
        self.logger = logging.getLogger(__name__)

        self.include_patterns = compile_patterns(config.include_url_patterns)
        self.exclude_patterns = compile_patterns(config.exclude_url_patterns)

    async def crawl(self, entry_url: str, wait_for_completion: bool = False) -> CrawlResult:
        """
        Discover links from ``entry_url`` and optionally process them.

        Args:
            entry_url: Absolute http(s) URL to start from
            wait_for_completion: Block until the processor pool has drained the queue

        Returns:
            CrawlResult with traversal counters
        """
        start = normalize_url(entry_url)
        if start is None:
            self.logger.warning(f"Invalid entry URL: {entry_url}")
            return CrawlResult()

        result = CrawlResult(entry_url=start)
        max_depth = max(0, self.config.max_depth)

        work_list: Deque[Tuple[str, int]] = deque([(start, 0)])
        visited: Set[str] = {start}

        if self.processor_manager is not None:
            await self._enqueue(start, result)

        owns_fetcher = self.fetcher is None
        fetcher = self.fetcher or WebFetcher(self.config.user_agent, self.config.request_timeout_ms)
        try:
            while work_list:
                url, depth = work_list.popleft()
                if depth > max_depth:
                    continue

                links = await self._discover_links(fetcher, url, result)
                if links is None:
                    continue

                for link in links:
                    if not is_accepted(link, self.include_patterns, self.exclude_patterns):
                        continue

                    await self._enqueue(link, result)

                    if depth < max_depth and link not in visited:
                        visited.add(link)
                        work_list.append((link, depth + 1))
        finally:
            if owns_fetcher:
                await fetcher.close()

        self.logger.info(
            f"Traversal from {start} finished: {result.pages_fetched} pages fetched, "
            f"{result.links_enqueued} links enqueued, {result.failures} failures"
        )

        await self._start_processors(result, wait_for_completion)
        return result

    async def _discover_links(self, fetcher: WebFetcher, url: str, result: CrawlResult):
        fetch_result = await fetcher.fetch(url)
        if not fetch_result.ok:
            self.logger.debug(f"Failed to fetch {url}: {fetch_result.error}")
            result.failures += 1
            return None
        if not fetch_result.is_text:
            return None

        try:
            page = self.parser.parse(fetch_result.final_url or url, fetch_result.content)
        except ParseError as e:
            self.logger.debug(f"Failed to parse {url}: {e}")
            result.failures += 1
            return None

        result.pages_fetched += 1
        return page.links

    async def _enqueue(self, url: str, result: CrawlResult):
        if await self.link_queue.enqueue(url):
            result.links_enqueued += 1
            if self.metrics is not None:
                self.metrics.record_links_enqueued()

    async def _start_processors(self, result: CrawlResult, wait_for_completion: bool):
        if self.processor_manager is None:
            return
        if self.processor_manager.is_running():
            self.logger.debug("Processor pool already running, not starting another")
            return

        workers = self.config.worker_count
        await self.processor_manager.start(workers, self.link_queue, self.config, self.sink)
        result.pool_started = True
        self.logger.debug(f"Processor pool started with {workers} workers, wait={wait_for_completion}")

        if wait_for_completion:
            result.completed = await self.processor_manager.await_all(None)

    def _log_document(self, document: PageDocument):
        if document is not None:
            self.logger.debug(f"Sink consumed page: url={document.url}, status={document.status}")
