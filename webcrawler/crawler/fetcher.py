"""
Web page fetcher built on a shared aiohttp session.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Dict, Optional

import aiohttp
from aiohttp import ClientError, ClientSession, ClientTimeout

from ..errors import FetchError

DEFAULT_MAX_CONTENT_BYTES = 10 * 1024 * 1024

TEXT_CONTENT_TYPES = [
    'text/html',
    'text/plain',
    'text/xml',
    'application/xml',
    'application/xhtml+xml',
    'application/json',
    'application/ld+json'
]


@dataclass
class FetchResult:
    """Result of a fetch operation."""
    url: str
    status_code: Optional[int] = None
    content: Optional[str] = None
    final_url: Optional[str] = None
    headers: Optional[Dict[str, str]] = None
    error: Optional[str] = None
    fetch_time: float = 0.0
    content_type: Optional[str] = None
    encoding: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def fetch_duration_ms(self) -> int:
        return max(0, int(self.fetch_time * 1000))

    @property
    def is_text(self) -> bool:
        """True when the response declared no content type or a text-based one."""
        if not self.content_type:
            return True
        content_type = self.content_type.lower()
        return any(text_type in content_type for text_type in TEXT_CONTENT_TYPES)


class WebFetcher:
    """
    Fetches web pages with a bounded timeout and an identifying user agent.

    Redirects are followed and non-2xx responses are returned like any other;
    transport failures never raise, they come back as a FetchResult with
    ``error`` set.
    """

    def __init__(self, user_agent: str, request_timeout_ms: int = 10000,
                 max_concurrent_requests: int = 100,
                 max_content_bytes: int = DEFAULT_MAX_CONTENT_BYTES):
        self.user_agent = user_agent
        self.request_timeout_ms = request_timeout_ms
        self.max_concurrent_requests = max_concurrent_requests
        self.max_content_bytes = max_content_bytes

        self.logger = logging.getLogger(__name__)

        # Session management
        self.session: Optional[ClientSession] = None
        self.semaphore = asyncio.Semaphore(max_concurrent_requests)

        # Statistics
        self.stats = {
            'total_requests': 0,
            'successful_requests': 0,
            'failed_requests': 0,
            'total_bytes_downloaded': 0
        }

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def start(self):
        """Initialize the fetcher session."""
        if self.session is None or self.session.closed:
            timeout = ClientTimeout(total=max(0.001, self.request_timeout_ms / 1000))
            headers = {'User-Agent': self.user_agent}

            self.session = aiohttp.ClientSession(
                timeout=timeout,
                headers=headers,
                connector=aiohttp.TCPConnector(
                    limit=self.max_concurrent_requests * 2,
                    limit_per_host=10,
                    ttl_dns_cache=300,
                    use_dns_cache=True
                )
            )
            self.logger.info("WebFetcher session started")

    async def close(self):
        """Close the fetcher session."""
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.info("WebFetcher session closed")

    async def fetch(self, url: str) -> FetchResult:
        """
        Fetch a single URL.

        Args:
            url: The URL to fetch

        Returns:
            FetchResult object containing the response data or error information
        """
        if self.session is None or self.session.closed:
            await self.start()

        start_time = time.monotonic()
        result: Optional[FetchResult] = None

        async with self.semaphore:
            try:
                self.stats['total_requests'] += 1

                async with self.session.get(url, allow_redirects=True) as response:
                    content_type = response.headers.get('content-type')
                    result = FetchResult(
                        url=url,
                        status_code=response.status,
                        final_url=str(response.url),
                        headers=dict(response.headers),
                        content_type=content_type,
                        encoding=response.charset,
                    )

                    # Non-text payloads are reported but not downloaded
                    if not result.is_text:
                        self.logger.debug(f"Skipping non-text content: {url} ({content_type})")
                        result.fetch_time = time.monotonic() - start_time
                        return result

                    result.content = await self._read_content(url, response)
                    result.fetch_time = time.monotonic() - start_time

                    self.stats['total_bytes_downloaded'] += len(result.content)
                    self.stats['successful_requests'] += 1
                    self.logger.debug(f"Fetched {url}: {response.status} ({len(result.content)} chars)")
                    return result

            except FetchError as e:
                error_msg = str(e)
                self.logger.warning(error_msg)

            except asyncio.TimeoutError:
                error_msg = "Request timeout"
                self.logger.warning(f"Timeout fetching {url}")

            except ClientError as e:
                error_msg = f"Client error: {e}"
                self.logger.warning(f"Client error fetching {url}: {e}")

            except Exception as e:
                error_msg = f"Unexpected error: {e}"
                self.logger.error(f"Unexpected error fetching {url}: {e}")

            self.stats['failed_requests'] += 1
            if result is None:
                result = FetchResult(url=url)
            # status and content type survive a failure after the headers arrived
            result.content = None
            result.error = error_msg
            result.fetch_time = time.monotonic() - start_time
            return result

    async def _read_content(self, url: str, response: aiohttp.ClientResponse) -> str:
        """
        Read the response body within the size limit and decode it.

        Raises:
            FetchError: if the body exceeds ``max_content_bytes``
        """
        content_length = response.headers.get('content-length')
        if content_length and content_length.isdigit() and int(content_length) > self.max_content_bytes:
            raise FetchError(url, f"content too large ({content_length} bytes)")

        content_bytes = bytearray()
        async for chunk in response.content.iter_chunked(8192):
            content_bytes.extend(chunk)
            if len(content_bytes) > self.max_content_bytes:
                raise FetchError(url, "content exceeded size limit during reading")

        encoding = response.charset or 'utf-8'
        try:
            return content_bytes.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            # Try common encodings
            for fallback_encoding in ['utf-8', 'latin-1']:
                try:
                    return content_bytes.decode(fallback_encoding)
                except UnicodeDecodeError:
                    continue
            return content_bytes.decode('utf-8', errors='ignore')

    def get_stats(self) -> Dict[str, int]:
        """Get fetcher statistics."""
        return self.stats.copy()
