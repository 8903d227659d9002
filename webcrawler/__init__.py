"""
Web Crawler System

Breadth-first link discovery, rule-based content extraction and a worker
pool that indexes crawled pages into a search store.
"""

__version__ = "1.0.0"
__description__ = "A web crawler that extracts page content and feeds it into a search index"
