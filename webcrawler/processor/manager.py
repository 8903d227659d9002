"""
Pool of processors draining one link queue.
"""

import asyncio
import logging
from typing import List, Optional, Tuple

from ..crawler.fetcher import WebFetcher
from ..crawler.link_queue import LinkQueue
from ..crawler.page_builder import PageBuilder
from ..storage.duplicate_detector import DuplicateDetector
from ..storage.index_store import IndexStore, get_index_name
from ..utils.config import CrawlerConfig
from ..utils.monitoring import CrawlerMetrics
from .processor import DocumentSink, Processor
from .state import ProcessorState, ProcessorStatus


class ProcessorManager:
    """
    Starts N processors over a shared link queue and tracks their lifecycle.

    The pool owns one WebFetcher session for all of its processors and
    releases it once every processor has reached a terminal state.
    """

    def __init__(self, index_store: Optional[IndexStore] = None,
                 tenant_id: Optional[str] = None,
                 metrics: Optional[CrawlerMetrics] = None,
                 duplicate_detector: Optional[DuplicateDetector] = None):
        self.index_store = index_store
        self.tenant_id = tenant_id
        self.metrics = metrics
        self.duplicate_detector = duplicate_detector
        self.logger = logging.getLogger(__name__)

        self._processors: List[Processor] = []
        self._tasks: List[asyncio.Task] = []
        self._fetcher: Optional[WebFetcher] = None
        self._starting = False

    async def start(self, count: int, link_queue: LinkQueue, config: CrawlerConfig,
                    sink: DocumentSink) -> List[Processor]:
        """
        Start ``max(1, count)`` processors.

        Raises:
            RuntimeError: if the pool is already running
        """
        if self.is_running():
            raise RuntimeError("Processor pool is already running")

        # claimed before the first await so a concurrent start() is rejected
        self._starting = True
        try:
            return await self._start(count, link_queue, config, sink)
        finally:
            self._starting = False

    async def _start(self, count: int, link_queue: LinkQueue, config: CrawlerConfig,
                     sink: DocumentSink) -> List[Processor]:
        # resources of a previous run that was never awaited
        await self._release()

        count = max(1, count)
        self._fetcher = WebFetcher(config.user_agent, config.request_timeout_ms)
        page_builder = PageBuilder(self._fetcher, config)

        index_name = None
        if self.index_store is not None:
            index_name = get_index_name(config.index_prefix, self.tenant_id)

        self._processors = [
            Processor(
                f"processor-{i + 1}",
                link_queue,
                page_builder,
                sink,
                index_store=self.index_store,
                index_name=index_name,
                duplicate_detector=self.duplicate_detector,
                metrics=self.metrics,
            )
            for i in range(count)
        ]
        self._tasks = [task for task in (p.start() for p in self._processors) if task is not None]

        self.logger.info(
            f"Started {count} processors"
            + (f" indexing into {index_name}" if index_name else " without indexing")
        )
        return list(self._processors)

    async def stop_all(self):
        """Request a stop on every processor and wait for all of them to finish."""
        for processor in self._processors:
            processor.stop()

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        await self._release()
        self._log_summary("stopped")

    async def await_all(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until every processor is in a terminal state.

        Returns:
            True if the pool finished within ``timeout`` seconds (None waits
            forever), False otherwise. Processors are not cancelled on timeout.
        """
        if self._tasks:
            _, pending = await asyncio.wait(self._tasks, timeout=timeout)
            if pending:
                self._log_summary(f"still running after {timeout}s")
                return False

        await self._release()
        self._log_summary("completed")
        return True

    def is_running(self) -> bool:
        return self._starting or any(not task.done() for task in self._tasks)

    def statuses(self) -> Tuple[ProcessorStatus, ...]:
        return tuple(processor.status for processor in self._processors)

    async def _release(self):
        if self._fetcher is not None:
            await self._fetcher.close()
            self._fetcher = None

    def _log_summary(self, outcome: str):
        statuses = self.statuses()
        counts = {state: 0 for state in ProcessorState}
        for status in statuses:
            counts[status.state] += 1
        processed = sum(status.processed_count for status in statuses)

        self.logger.info(
            f"Processor pool {outcome}: "
            f"completed={counts[ProcessorState.COMPLETED]} "
            f"stopped={counts[ProcessorState.STOPPED]} "
            f"error={counts[ProcessorState.ERROR]} "
            f"running={counts[ProcessorState.RUNNING]} "
            f"total_processed={processed}"
        )
