"""
A single worker that drains the link queue into page documents.
"""

import asyncio
import inspect
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from ..crawler.link_queue import LinkQueue
from ..crawler.page_builder import PageBuilder
from ..errors import IndexingError, ParseError
from ..models import CrawlStatus, PageDocument
from ..storage.duplicate_detector import DuplicateDetector
from ..storage.index_store import IndexStore
from ..utils.logger import get_crawler_logger
from ..utils.monitoring import CrawlerMetrics
from .state import ProcessorState, ProcessorStatus, check_transition

DocumentSink = Callable[[PageDocument], Any]


class Processor:
    """
    Repeatedly dequeues a URL, builds its PageDocument and hands it to the sink.

    The loop ends with COMPLETED when the queue is empty, with STOPPED when a
    stop was requested, or with ERROR on the first failure of an iteration.
    The stop flag is only checked between URLs, so a page in flight is
    always finished first.
    """

    def __init__(self, processor_id: str, link_queue: LinkQueue, page_builder: PageBuilder,
                 sink: DocumentSink, index_store: Optional[IndexStore] = None,
                 index_name: Optional[str] = None,
                 duplicate_detector: Optional[DuplicateDetector] = None,
                 metrics: Optional[CrawlerMetrics] = None):
        if not processor_id:
            raise ValueError("processor_id must not be blank")
        if link_queue is None or page_builder is None or sink is None:
            raise ValueError("link_queue, page_builder and sink are required")

        self.id = processor_id
        self.link_queue = link_queue
        self.page_builder = page_builder
        self.sink = sink
        self.index_store = index_store
        self.index_name = index_name
        self.duplicate_detector = duplicate_detector
        self.metrics = metrics

        self.logger = get_crawler_logger(__name__, processor_id=processor_id)

        self._state = ProcessorState.NEW
        self._stop_requested = False
        self._processed_count = 0
        self._last_url: Optional[str] = None
        self._last_error: Optional[str] = None
        self._started_at: Optional[datetime] = None
        self._finished_at: Optional[datetime] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def state(self) -> ProcessorState:
        return self._state

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    @property
    def status(self) -> ProcessorStatus:
        return ProcessorStatus(
            id=self.id,
            state=self._state,
            processed_count=self._processed_count,
            last_url=self._last_url,
            last_error=self._last_error,
            started_at=self._started_at,
            finished_at=self._finished_at,
        )

    def start(self) -> Optional[asyncio.Task]:
        """Move to RUNNING and schedule the loop. A stopped processor never runs."""
        if self._state is not ProcessorState.NEW:
            self.logger.debug(f"Processor {self.id} not started, state is {self._state.value}")
            return self._task
        self._transition(ProcessorState.RUNNING)
        self._task = asyncio.create_task(self.run(), name=f"processor-{self.id}")
        return self._task

    def stop(self):
        """Request a stop. A processor that has not started is stopped at once."""
        self._stop_requested = True
        if self._state is ProcessorState.NEW:
            self._transition(ProcessorState.STOPPED)

    async def run(self):
        """Run the processing loop in the current task."""
        if self._state is ProcessorState.NEW:
            self._transition(ProcessorState.RUNNING)
        if self._state is not ProcessorState.RUNNING:
            return

        try:
            while True:
                if self._stop_requested:
                    self._transition(ProcessorState.STOPPED)
                    return

                url = await self.link_queue.dequeue()
                if url is None:
                    self._transition(ProcessorState.COMPLETED)
                    return

                self._last_url = url
                await self._process_url(url)
                self._processed_count += 1

        except asyncio.CancelledError:
            self._transition(ProcessorState.STOPPED)
            raise
        except Exception as e:
            self._last_error = str(e) or type(e).__name__
            self._transition(ProcessorState.ERROR, e)

    async def _process_url(self, url: str):
        try:
            document = await self.page_builder.build(url)
        except ParseError as e:
            if e.document is not None:
                await self._emit(e.document)
            raise

        if document.status is CrawlStatus.OK and self.duplicate_detector is not None:
            if await self.duplicate_detector.check_and_add(document.hash):
                self.logger.log_url_event(logging.DEBUG, url, f"Duplicate content for {url}")
                document.status = CrawlStatus.DUPLICATE

        await self._emit(document)

        if document.status is CrawlStatus.OK:
            await self._index(url, document)

    async def _emit(self, document: PageDocument):
        if self.metrics is not None and document.status is not None:
            self.metrics.record_page(document.status.value, document.fetch_duration_ms)
        result = self.sink(document)
        if inspect.isawaitable(result):
            await result

    async def _index(self, url: str, document: PageDocument):
        if self.index_store is None or not self.index_name or not self.index_name.strip():
            return

        try:
            assigned_id = await self.index_store.index_document(self.index_name, document)
        except Exception as e:
            if self.metrics is not None:
                self.metrics.record_indexing_failure()
            message = f"Processor {self.id} failed to index {url} into {self.index_name}: {e}"
            self.logger.error(message)
            if isinstance(e, IndexingError):
                raise
            raise IndexingError(message, index_name=self.index_name) from e

        if assigned_id and not document.id:
            document.id = assigned_id

    def _transition(self, new_state: ProcessorState, error: Optional[BaseException] = None):
        old_state = self._state
        check_transition(old_state, new_state)
        now = datetime.now(timezone.utc)

        if new_state is ProcessorState.RUNNING:
            if self._started_at is None:
                self._started_at = now
            self._state = new_state
            if self.metrics is not None:
                self.metrics.processor_started()
            self.logger.info(f"Processor {self.id} state {old_state.value} -> RUNNING")
            return

        self._finished_at = now
        self._state = new_state
        if old_state is ProcessorState.RUNNING and self.metrics is not None:
            self.metrics.processor_finished()

        duration = self.status.duration_ms or 0
        if new_state is ProcessorState.ERROR:
            self.logger.error(
                f"Processor {self.id} state {old_state.value} -> ERROR after {duration} ms "
                f"(processed={self._processed_count}, last_url={self._last_url}, error={self._last_error})",
                exc_info=error
            )
        else:
            self.logger.info(
                f"Processor {self.id} state {old_state.value} -> {new_state.value} after {duration} ms "
                f"(processed={self._processed_count}, last_url={self._last_url})"
            )
