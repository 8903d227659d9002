import asyncio

import pytest

from webcrawler.crawler.link_queue import (
    LocalLinkQueue, RedisLinkQueue, create_link_queue
)
from webcrawler.errors import ConfigurationError


@pytest.fixture(params=["local", "redis"])
def queue(request, fake_redis):
    if request.param == "local":
        return LocalLinkQueue()
    return RedisLinkQueue(fake_redis, namespace="test")


@pytest.mark.asyncio
async def test_duplicate_enqueue_emits_once(queue):
    assert await queue.enqueue("https://a.example/") is True
    assert await queue.enqueue("https://a.example/") is False

    assert await queue.dequeue() == "https://a.example/"
    assert await queue.dequeue() is None

    # membership survives dequeue
    assert await queue.enqueue("https://a.example/") is False
    assert await queue.dequeue() is None


@pytest.mark.asyncio
async def test_fifo_with_interleaved_duplicates(queue):
    for url in ["a", "b", "a", "c"]:
        await queue.enqueue(url)

    assert [await queue.dequeue() for _ in range(4)] == ["a", "b", "c", None]


@pytest.mark.asyncio
async def test_blank_input_ignored(queue):
    assert await queue.enqueue(None) is False
    assert await queue.enqueue("") is False
    assert await queue.enqueue("   ") is False
    assert await queue.dequeue() is None


@pytest.mark.asyncio
async def test_reset_allows_reenqueue_once(queue):
    await queue.enqueue("u")
    await queue.dequeue()
    await queue.reset()

    assert await queue.enqueue("u") is True
    assert await queue.enqueue("u") is False
    assert await queue.dequeue() == "u"
    assert await queue.dequeue() is None


@pytest.mark.asyncio
async def test_reset_clears_pending(queue):
    await queue.enqueue("x")
    await queue.enqueue("y")
    await queue.reset()
    assert await queue.size() == 0
    assert await queue.dequeue() is None


@pytest.mark.asyncio
async def test_concurrent_enqueues_accept_each_url_once(queue):
    urls = [f"https://example.com/{i % 10}" for i in range(100)]
    results = await asyncio.gather(*(queue.enqueue(u) for u in urls))

    assert sum(results) == 10
    drained = []
    while (url := await queue.dequeue()) is not None:
        drained.append(url)
    assert sorted(drained) == sorted(set(urls))


@pytest.mark.asyncio
async def test_redis_keys_use_namespace(fake_redis):
    queue = RedisLinkQueue(fake_redis, namespace="ns")
    await queue.enqueue("https://example.com/")

    assert "https://example.com/" in fake_redis.sets["ns:seen"]
    assert list(fake_redis.lists["ns:queue"]) == ["https://example.com/"]


@pytest.mark.asyncio
async def test_redis_enqueue_is_a_single_script(fake_redis):
    queue = RedisLinkQueue(fake_redis, namespace="ns")

    assert len(fake_redis.scripts) == 1
    assert "SADD" in fake_redis.scripts[0] and "RPUSH" in fake_redis.scripts[0]

    assert await queue.enqueue("https://example.com/") is True
    assert await queue.enqueue("https://example.com/") is False
    assert await queue.size() == 1


@pytest.mark.asyncio
async def test_interrupted_redis_enqueue_leaves_url_unseen(fake_redis):
    queue = RedisLinkQueue(fake_redis, namespace="ns")
    fake_redis.fail_next_script = asyncio.CancelledError()

    with pytest.raises(asyncio.CancelledError):
        await queue.enqueue("https://example.com/a")

    assert "https://example.com/a" not in fake_redis.sets["ns:seen"]
    assert await queue.enqueue("https://example.com/a") is True
    assert await queue.dequeue() == "https://example.com/a"


def test_factory_selects_backing(fake_redis):
    assert isinstance(create_link_queue("local"), LocalLinkQueue)
    assert isinstance(create_link_queue(None), LocalLinkQueue)
    shared = create_link_queue("shared", fake_redis, "crawl")
    assert isinstance(shared, RedisLinkQueue)
    assert shared.seen_key == "crawl:seen"


def test_factory_rejects_shared_without_client():
    with pytest.raises(ConfigurationError):
        create_link_queue("shared")


def test_factory_rejects_unknown_type():
    with pytest.raises(ConfigurationError):
        create_link_queue("kafka")
