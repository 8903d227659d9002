"""
Web crawler core components.
"""

from .link_queue import LinkQueue, LocalLinkQueue, RedisLinkQueue, create_link_queue
from .fetcher import WebFetcher, FetchResult
from .parser import ContentParser, ParsedPage
from .page_builder import PageBuilder
from .crawler_service import CrawlerService, CrawlResult

__all__ = [
    'LinkQueue', 'LocalLinkQueue', 'RedisLinkQueue', 'create_link_queue',
    'WebFetcher', 'FetchResult',
    'ContentParser', 'ParsedPage',
    'PageBuilder',
    'CrawlerService', 'CrawlResult'
]
