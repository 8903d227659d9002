import pytest

from webcrawler.crawler import CrawlerService, LocalLinkQueue
from webcrawler.models import CrawlStatus
from webcrawler.processor import ProcessorManager, ProcessorState
from webcrawler.utils.config import CrawlerConfig


def _page(*links):
    anchors = "".join(f'<a href="{link}">{link}</a>' for link in links)
    return f"<html><body><p>page</p>{anchors}</body></html>"


SITE = {
    '/': _page("/a", "/b", "/files/report.pdf", "mailto:x@example.com"),
    '/a': _page("/a1", "/"),
    '/b': _page("/b1"),
    '/a1': _page("/deep"),
    '/b1': _page(),
    '/deep': _page(),
}


async def _drain(queue):
    urls = []
    while (url := await queue.dequeue()) is not None:
        urls.append(url)
    return urls


def _paths(site, urls):
    prefix = site.url("/")[:-1]
    return [u[len(prefix):] for u in urls]


@pytest.mark.asyncio
async def test_max_depth_zero_only_enqueues_entry_links(make_site):
    site = await make_site(dict(SITE))
    queue = LocalLinkQueue()
    config = CrawlerConfig(max_depth=0, exclude_url_patterns=[r"\.pdf$"])

    result = await CrawlerService(queue, config).crawl(site.url("/"))

    assert _paths(site, await _drain(queue)) == ["/a", "/b"]
    assert dict(site.hits) == {'/': 1}
    assert result.pages_fetched == 1
    assert result.links_enqueued == 2


@pytest.mark.asyncio
async def test_breadth_first_to_max_depth(make_site):
    site = await make_site(dict(SITE))
    queue = LocalLinkQueue()
    config = CrawlerConfig(max_depth=1, exclude_url_patterns=[r"\.pdf$"])

    await CrawlerService(queue, config).crawl(site.url("/"))

    # the entry page is rediscovered from /a and enqueued once
    assert _paths(site, await _drain(queue)) == ["/a", "/b", "/a1", "/", "/b1"]
    assert set(site.hits) == {'/', '/a', '/b'}
    assert all(count == 1 for count in site.hits.values())


@pytest.mark.asyncio
async def test_include_patterns_restrict_links(make_site):
    site = await make_site(dict(SITE))
    queue = LocalLinkQueue()
    config = CrawlerConfig(max_depth=1, include_url_patterns=[r"/a"])

    await CrawlerService(queue, config).crawl(site.url("/"))

    assert _paths(site, await _drain(queue)) == ["/a", "/a1"]
    assert '/b' not in site.hits


@pytest.mark.asyncio
async def test_excludes_take_precedence_over_includes(make_site):
    site = await make_site(dict(SITE))
    queue = LocalLinkQueue()
    config = CrawlerConfig(max_depth=0, include_url_patterns=[r"/"], exclude_url_patterns=[r"/b"])

    await CrawlerService(queue, config).crawl(site.url("/"))

    assert _paths(site, await _drain(queue)) == ["/a", "/files/report.pdf"]


@pytest.mark.asyncio
async def test_invalid_patterns_are_ignored(make_site):
    site = await make_site(dict(SITE))
    queue = LocalLinkQueue()
    config = CrawlerConfig(max_depth=0, exclude_url_patterns=["([bad", r"\.pdf$"])

    await CrawlerService(queue, config).crawl(site.url("/"))

    assert _paths(site, await _drain(queue)) == ["/a", "/b"]


@pytest.mark.asyncio
@pytest.mark.parametrize("entry", ["", "ftp://example.com/", "not a url", None])
async def test_invalid_entry_has_no_side_effects(entry):
    queue = LocalLinkQueue()
    result = await CrawlerService(queue, CrawlerConfig()).crawl(entry)

    assert result.entry_url is None
    assert result.pages_fetched == 0
    assert await queue.dequeue() is None


@pytest.mark.asyncio
async def test_failed_branch_does_not_abort_traversal(make_site):
    site = await make_site({
        '/': _page("http://127.0.0.1:9/unreachable", "/ok"),
        '/ok': _page("/leaf"),
    })
    queue = LocalLinkQueue()

    result = await CrawlerService(queue, CrawlerConfig(max_depth=1)).crawl(site.url("/"))

    assert result.failures == 1
    assert result.pages_fetched == 2
    urls = await _drain(queue)
    assert site.url("/leaf") in urls


@pytest.mark.asyncio
async def test_with_processor_manager_processes_everything(make_site, sink):
    site = await make_site(dict(SITE))
    queue = LocalLinkQueue()
    config = CrawlerConfig(max_depth=1, worker_count=3, exclude_url_patterns=[r"\.pdf$"])
    manager = ProcessorManager()

    result = await CrawlerService(queue, config, manager, sink=sink).crawl(
        site.url("/"), wait_for_completion=True
    )

    assert result.pool_started is True
    assert result.completed is True
    assert not manager.is_running()
    assert sorted(_paths(site, sink.urls())) == ["/", "/a", "/a1", "/b", "/b1"]
    assert all(doc.status is CrawlStatus.OK for doc in sink.documents)
    statuses = manager.statuses()
    assert len(statuses) == 3
    assert all(s.state is ProcessorState.COMPLETED for s in statuses)
    assert sum(s.processed_count for s in statuses) == 5


class _BusyManager:
    """Pool that reports itself as running."""

    def __init__(self):
        self.start_calls = 0

    def is_running(self):
        return True

    async def start(self, *args, **kwargs):
        self.start_calls += 1


@pytest.mark.asyncio
async def test_running_pool_is_not_restarted(make_site):
    site = await make_site(dict(SITE))
    queue = LocalLinkQueue()
    manager = _BusyManager()

    result = await CrawlerService(queue, CrawlerConfig(max_depth=0), manager).crawl(site.url("/"))

    assert manager.start_calls == 0
    assert result.pool_started is False
    # with a pool wired the entry URL is queued as well
    assert await queue.dequeue() == site.url("/")
