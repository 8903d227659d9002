"""
Page document model: the normalized record of one fetch+parse outcome.
"""

import hashlib
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

URL_SEPARATOR = '\0'
SEGMENT_SEPARATOR = '\x1f'


class CrawlStatus(Enum):
    """Outcome of crawling a single URL."""
    OK = "OK"
    SKIPPED = "SKIPPED"
    ERROR_FETCH = "ERROR_FETCH"
    ERROR_PARSE = "ERROR_PARSE"
    DUPLICATE = "DUPLICATE"


# attribute name -> serialized name
_WIRE_NAMES = {
    'id': 'id',
    'url': 'url',
    'domain': 'domain',
    'crawl_timestamp': 'crawlTimestamp',
    'status': 'status',
    'http_status': 'httpStatus',
    'fetch_duration_ms': 'fetchDurationMs',
    'crawl_depth': 'crawlDepth',
    'title': 'title',
    'description': 'description',
    'contents': 'contents',
    'content_length': 'contentLength',
    'content_type': 'contentType',
    'language': 'language',
    'out_links': 'outLinks',
    'hash': 'hash',
}


class PageDocument:
    """
    Content and metadata of a crawled web page.

    The ``hash`` is derived from ``url`` and ``contents`` and recomputed on
    every change to either of them. It cannot be assigned; a hash passed to
    the constructor or found in serialized data is ignored.
    """

    def __init__(self, url: Optional[str] = None, contents: Optional[Iterable[str]] = None,
                 id: Optional[str] = None, domain: Optional[str] = None,
                 crawl_timestamp: Optional[int] = None,
                 status: Optional[CrawlStatus] = None,
                 http_status: Optional[int] = None,
                 fetch_duration_ms: Optional[int] = None,
                 crawl_depth: Optional[int] = None,
                 title: Optional[str] = None,
                 description: Optional[str] = None,
                 content_length: Optional[int] = None,
                 content_type: Optional[str] = None,
                 language: Optional[str] = None,
                 out_links: Optional[Iterable[str]] = None,
                 hash: Optional[str] = None):
        self.id = id
        self.domain = domain
        self.crawl_timestamp = crawl_timestamp
        self.status = status
        self.http_status = http_status
        self.fetch_duration_ms = fetch_duration_ms
        self.crawl_depth = crawl_depth
        self.title = title
        self.description = description
        self.content_length = content_length
        self.content_type = content_type
        self.language = language
        self._out_links = list(out_links) if out_links is not None else None
        self._url = url
        self._contents = list(contents) if contents is not None else None
        self._hash = self.compute_hash(self._url, self._contents)

    @property
    def url(self) -> Optional[str]:
        return self._url

    @url.setter
    def url(self, value: Optional[str]):
        self._url = value
        self._rehash()

    @property
    def contents(self) -> Optional[List[str]]:
        """A copy of the content segments; mutate through the setter or helpers."""
        return list(self._contents) if self._contents is not None else None

    @contents.setter
    def contents(self, value: Optional[Iterable[str]]):
        self._contents = list(value) if value is not None else None
        self._rehash()

    @property
    def out_links(self) -> Optional[List[str]]:
        return list(self._out_links) if self._out_links is not None else None

    @out_links.setter
    def out_links(self, value: Optional[Iterable[str]]):
        self._out_links = list(value) if value is not None else None

    @property
    def hash(self) -> str:
        return self._hash

    def add_contents(self, content: Union[str, Iterable[str], None]):
        """
        Append one segment, or every segment of an iterable.

        A single ``None`` is stored as-is; an empty iterable is a no-op.
        """
        if content is None or isinstance(content, str):
            additions = [content]
        else:
            additions = list(content)
            if not additions:
                return
        if self._contents is None:
            self._contents = []
        self._contents.extend(additions)
        self._rehash()

    def update_contents(self, contents: Optional[Iterable[str]]):
        """Replace all segments; ``None`` clears them."""
        self.contents = contents

    def _rehash(self):
        self._hash = self.compute_hash(self._url, self._contents)

    @staticmethod
    def compute_hash(url: Optional[str], contents: Optional[Iterable[Optional[str]]]) -> str:
        """
        SHA-256 hex digest of ``url + NUL + join(contents, UNIT SEPARATOR)``.

        ``None`` inputs are treated as empty strings.
        """
        joined = SEGMENT_SEPARATOR.join(part or '' for part in contents) if contents else ''
        data = f"{url or ''}{URL_SEPARATOR}{joined}"
        return hashlib.sha256(data.encode('utf-8')).hexdigest()

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using wire field names, omitting unset fields."""
        data = {}
        for attr, name in _WIRE_NAMES.items():
            value = getattr(self, attr)
            if value is None:
                continue
            if isinstance(value, CrawlStatus):
                value = value.value
            data[name] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PageDocument':
        """Create a document from serialized data. Any ``hash`` entry is ignored."""
        kwargs = {}
        for attr, name in _WIRE_NAMES.items():
            if attr == 'hash':
                continue
            if name in data:
                kwargs[attr] = data[name]
            elif attr in data:
                kwargs[attr] = data[attr]
        if kwargs.get('status') is not None:
            kwargs['status'] = CrawlStatus(kwargs['status'])
        return cls(**kwargs)

    def __eq__(self, other):
        if not isinstance(other, PageDocument):
            return NotImplemented
        if self.id is not None or other.id is not None:
            return self.id == other.id
        return self.url == other.url

    def __hash__(self):
        return hash(self.id) if self.id is not None else hash(self.url)

    def __repr__(self):
        return (f"PageDocument(id={self.id!r}, url={self.url!r}, status={self.status}, "
                f"http_status={self.http_status}, title={self.title!r}, "
                f"content_length={self.content_length}, "
                f"out_links={len(self._out_links) if self._out_links else 0}, "
                f"hash={self.hash!r})")
