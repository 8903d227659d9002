"""
Exception hierarchy for the web crawler system.
"""

from typing import Optional


class CrawlerError(Exception):
    """Base class for crawler errors."""
    pass


class FetchError(CrawlerError):
    """Network, timeout or transport failure while fetching a page."""

    def __init__(self, url: str, message: str):
        super().__init__(f"Failed to fetch {url}: {message}")
        self.url = url


class ParseError(CrawlerError):
    """
    Malformed content after a successful fetch.

    The ERROR_PARSE document built for the failing URL is attached so callers
    can still record it.
    """

    def __init__(self, url: str, message: str, document=None):
        super().__init__(f"Failed to parse {url}: {message}")
        self.url = url
        self.document = document


class IndexingError(CrawlerError):
    """The index store rejected a request or could not be reached."""

    def __init__(self, message: str, index_name: Optional[str] = None):
        super().__init__(message)
        self.index_name = index_name


class ConfigurationError(CrawlerError):
    """Invalid crawler configuration."""
    pass
