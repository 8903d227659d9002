"""
Data models for crawled pages.
"""

from .document import PageDocument, CrawlStatus

__all__ = ['PageDocument', 'CrawlStatus']
