"""Shared fixtures: an in-process HTTP site and a minimal async Redis stand-in."""

from collections import Counter, defaultdict, deque

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from webcrawler.utils.config import CrawlerConfig


class _FakeRedis:
    """Implements the handful of async Redis commands the crawler uses."""

    def __init__(self, decode_responses=False):
        self.decode_responses = decode_responses
        self.sets = defaultdict(set)
        self.lists = defaultdict(deque)
        self.scripts = []
        self.fail_next_script = None

    def _out(self, value):
        return value if self.decode_responses else value.encode('utf-8')

    async def sadd(self, key, *members):
        added = 0
        for member in members:
            if member not in self.sets[key]:
                self.sets[key].add(member)
                added += 1
        return added

    def register_script(self, source):
        """Scripts run as one step; only the link-queue enqueue script is understood."""
        self.scripts.append(source)

        async def run(keys=(), args=()):
            if self.fail_next_script is not None:
                error, self.fail_next_script = self.fail_next_script, None
                raise error
            seen_key, queue_key = keys
            if await self.sadd(seen_key, args[0]) == 0:
                return 0
            await self.rpush(queue_key, args[0])
            return 1

        return run

    async def rpush(self, key, *values):
        self.lists[key].extend(values)
        return len(self.lists[key])

    async def lpop(self, key):
        if not self.lists[key]:
            return None
        return self._out(self.lists[key].popleft())

    async def llen(self, key):
        return len(self.lists[key])

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.sets.pop(key, None) is not None:
                removed += 1
            if self.lists.pop(key, None) is not None:
                removed += 1
        return removed


@pytest.fixture
def fake_redis():
    return _FakeRedis()


class Site:
    """Static pages served by a local aiohttp server."""

    def __init__(self, pages):
        # path -> (body, content type) or body
        self.pages = pages
        self.hits = Counter()
        self.server = None

    async def handle(self, request):
        path = request.path
        self.hits[path] += 1
        page = self.pages.get(path)
        if page is None:
            return web.Response(status=404, text="<html><body>Not found</body></html>",
                                content_type="text/html")
        if isinstance(page, tuple):
            body, content_type = page
        else:
            body, content_type = page, "text/html"
        if isinstance(body, bytes):
            return web.Response(body=body, content_type=content_type)
        return web.Response(text=body, content_type=content_type)

    def url(self, path="/"):
        return str(self.server.make_url(path))


@pytest_asyncio.fixture
async def make_site():
    servers = []

    async def _make(pages):
        site = Site(pages)
        app = web.Application()
        app.router.add_route('GET', '/{tail:.*}', site.handle)
        site.server = TestServer(app)
        await site.server.start_server()
        servers.append(site.server)
        return site

    yield _make

    for server in servers:
        await server.close()


@pytest.fixture
def crawler_config():
    return CrawlerConfig(max_depth=1, request_timeout_ms=5000, worker_count=2)


class RecordingSink:
    """Collects every document handed to it."""

    def __init__(self):
        self.documents = []

    def __call__(self, document):
        self.documents.append(document)

    def urls(self):
        return [d.url for d in self.documents]


@pytest.fixture
def sink():
    return RecordingSink()
