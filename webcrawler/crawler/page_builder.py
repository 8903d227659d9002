"""
Builds a PageDocument from one fetch and parse of a URL.
"""

import logging
import time
from typing import Optional

from ..errors import ParseError
from ..extractor import ContentExtractor
from ..models import CrawlStatus, PageDocument
from ..utils.config import CrawlerConfig
from .fetcher import FetchResult, WebFetcher
from .parser import ContentParser
from .url_utils import domain_of


def _now_ms() -> int:
    return int(time.time() * 1000)


class PageBuilder:
    """
    Turns a URL into a PageDocument.

    Fetch failures and non-text responses come back as ERROR_FETCH and
    SKIPPED documents. A parse failure raises ParseError carrying the
    ERROR_PARSE document so the caller can record it before handling the error.
    """

    def __init__(self, fetcher: WebFetcher, config: CrawlerConfig,
                 extractor: Optional[ContentExtractor] = None,
                 parser: Optional[ContentParser] = None):
        self.fetcher = fetcher
        self.config = config
        self.extractor = extractor or ContentExtractor()
        self.parser = parser or ContentParser()
        self.logger = logging.getLogger(__name__)

    async def build(self, url: str, depth: Optional[int] = None) -> PageDocument:
        result = await self.fetcher.fetch(url)

        if not result.ok:
            self.logger.warning(f"Fetch failed for {url}: {result.error}")
            return self._base_document(url, depth, result, CrawlStatus.ERROR_FETCH)

        if not result.is_text:
            self.logger.debug(f"Skipping {url}: content type {result.content_type}")
            return self._base_document(url, depth, result, CrawlStatus.SKIPPED)

        base_url = result.final_url or url
        try:
            page = self.parser.parse(base_url, result.content)
            contents = self._contents_for(url, page)
        except Exception as e:
            document = self._base_document(url, depth, result, CrawlStatus.ERROR_PARSE)
            if isinstance(e, ParseError):
                e.document = document
                raise
            raise ParseError(url, str(e), document=document) from e

        document = self._base_document(url, depth, result, CrawlStatus.OK)
        document.title = page.title
        document.description = page.description
        document.language = page.language
        document.out_links = page.links
        document.update_contents(contents)
        document.content_length = sum(len(segment) for segment in contents)
        return document

    def _contents_for(self, url: str, page):
        rules = self.config.content_rules_for(url)
        if rules:
            return self.extractor.extract_from_soup(page.soup, any_rules=rules)
        # whole body text as a single segment
        return [page.text]

    def _base_document(self, url: str, depth: Optional[int], result: FetchResult,
                       status: CrawlStatus) -> PageDocument:
        return PageDocument(
            url=url,
            domain=domain_of(url),
            crawl_timestamp=_now_ms(),
            status=status,
            http_status=result.status_code,
            fetch_duration_ms=result.fetch_duration_ms,
            crawl_depth=depth,
            content_type=result.content_type,
        )
