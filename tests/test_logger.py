import io
import json
import logging

import pytest

from webcrawler.utils.config import LoggingConfig
from webcrawler.utils.logger import JSONFormatter, get_crawler_logger, setup_logging


@pytest.fixture
def json_stream():
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter())
    logger = logging.getLogger("webcrawler.tests.json")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    yield stream
    logger.removeHandler(handler)


def _records(stream):
    return [json.loads(line) for line in stream.getvalue().splitlines()]


def test_context_becomes_json_fields(json_stream):
    logger = get_crawler_logger("webcrawler.tests.json", processor_id="processor-1")

    logger.info("started")
    logger.log_url_event(logging.DEBUG, "https://example.com/", "duplicate", status="DUPLICATE")

    first, second = _records(json_stream)
    assert first['message'] == "started"
    assert first['processor_id'] == "processor-1"
    assert first['level'] == "INFO"
    assert second['url'] == "https://example.com/"
    assert second['status'] == "DUPLICATE"
    assert second['processor_id'] == "processor-1"


def test_exceptions_are_serialized(json_stream):
    logger = get_crawler_logger("webcrawler.tests.json")
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        logger.error("failed", exc_info=True)

    (record,) = _records(json_stream)
    assert "RuntimeError: boom" in record['exception']


@pytest.fixture
def installed_handlers():
    root = logging.getLogger()
    level = root.level
    installed = []
    yield installed
    for handler in installed:
        root.removeHandler(handler)
        handler.close()
    root.setLevel(level)


def test_setup_logging_writes_crawl_and_error_logs(tmp_path, installed_handlers):
    log_file = tmp_path / "logs" / "crawler.log"
    root = setup_logging(LoggingConfig(level="DEBUG", file=str(log_file), json=True))
    installed_handlers.extend(root.handlers)

    logging.getLogger("webcrawler.tests.setup").error("index unavailable")
    for handler in root.handlers:
        handler.flush()

    assert len(root.handlers) == 3
    assert logging.getLogger("elastic_transport").level == logging.WARNING
    assert "index unavailable" in log_file.read_text(encoding="utf-8")
    errors = (tmp_path / "logs" / "errors.log").read_text(encoding="utf-8")
    assert [json.loads(line)['message'] for line in errors.splitlines()] == ["index unavailable"]
