import hashlib

from webcrawler.models import CrawlStatus, PageDocument


URL = "https://example.com/page"


def _expected(url, contents):
    return hashlib.sha256(f"{url}\0{chr(0x1f).join(contents)}".encode('utf-8')).hexdigest()


def test_hash_matches_formula():
    doc = PageDocument(url=URL, contents=["alpha", "beta"])
    assert doc.hash == _expected(URL, ["alpha", "beta"])


def test_hash_is_deterministic():
    assert PageDocument.compute_hash(URL, ["a", "b"]) == PageDocument.compute_hash(URL, ["a", "b"])


def test_hash_changes_with_content_url_and_order():
    base = PageDocument.compute_hash(URL, ["a", "b"])
    assert PageDocument.compute_hash(URL, ["a", "c"]) != base
    assert PageDocument.compute_hash("https://example.com/other", ["a", "b"]) != base
    assert PageDocument.compute_hash(URL, ["b", "a"]) != base


def test_segment_boundaries_change_hash():
    assert PageDocument.compute_hash(URL, ["ab", "c"]) != PageDocument.compute_hash(URL, ["a", "bc"])


def test_none_inputs_hash_as_empty():
    assert PageDocument().hash == _expected("", [])
    assert PageDocument(url=URL, contents=[None, "x"]).hash == _expected(URL, ["", "x"])


def test_supplied_hash_is_ignored():
    doc = PageDocument(url=URL, contents=["x"], hash="bogus")
    assert doc.hash == _expected(URL, ["x"])

    restored = PageDocument.from_dict({'url': URL, 'contents': ["x"], 'hash': "bogus"})
    assert restored.hash == _expected(URL, ["x"])


def test_mutations_rehash():
    doc = PageDocument(url=URL)
    initial = doc.hash

    doc.add_contents("first")
    after_add = doc.hash
    assert after_add != initial
    assert doc.contents == ["first"]

    doc.add_contents(["second", "third"])
    assert doc.contents == ["first", "second", "third"]
    assert doc.hash == _expected(URL, ["first", "second", "third"])

    doc.update_contents(["only"])
    assert doc.hash == _expected(URL, ["only"])

    doc.url = "https://example.com/moved"
    assert doc.hash == _expected("https://example.com/moved", ["only"])


def test_contents_are_copied():
    segments = ["a"]
    doc = PageDocument(url=URL, contents=segments)
    segments.append("b")
    doc.contents.append("c")
    assert doc.contents == ["a"]
    assert doc.hash == _expected(URL, ["a"])


def test_to_dict_uses_wire_names_and_omits_none():
    doc = PageDocument(
        url=URL,
        contents=["text"],
        status=CrawlStatus.OK,
        http_status=200,
        fetch_duration_ms=12,
        crawl_depth=1,
        content_length=4,
        out_links=["https://example.com/a"],
    )
    data = doc.to_dict()

    assert 'id' not in data
    assert 'title' not in data
    assert data['status'] == "OK"
    assert data['httpStatus'] == 200
    assert data['fetchDurationMs'] == 12
    assert data['crawlDepth'] == 1
    assert data['contentLength'] == 4
    assert data['outLinks'] == ["https://example.com/a"]
    assert data['hash'] == doc.hash


def test_from_dict_round_trips_fields():
    original = PageDocument(url=URL, contents=["x"], status=CrawlStatus.ERROR_FETCH,
                            title="T", language="en")
    restored = PageDocument.from_dict(original.to_dict())
    assert restored.status is CrawlStatus.ERROR_FETCH
    assert restored.title == "T"
    assert restored.language == "en"
    assert restored.hash == original.hash


def test_equality_prefers_id():
    assert PageDocument(url=URL) == PageDocument(url=URL)
    assert PageDocument(url=URL, id="1") != PageDocument(url=URL, id="2")
    assert PageDocument(url="https://a.example/", id="1") == PageDocument(url="https://b.example/", id="1")
    assert PageDocument(url=URL, id="1") != PageDocument(url=URL)
