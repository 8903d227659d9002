"""
Logging setup for the web crawler.

Records go to the console, a rotating crawl log and a separate error log,
either as plain text or as one JSON object per line. Context attached through
``get_crawler_logger`` (for example the processor id) travels with every
record and shows up as top-level JSON fields.
"""

import json
import logging
import logging.handlers
import platform
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from .config import LoggingConfig

CRAWL_LOG_MAX_BYTES = 50 * 1024 * 1024
ERROR_LOG_MAX_BYTES = 10 * 1024 * 1024

# Client libraries whose INFO/DEBUG chatter drowns the crawl log
QUIET_LOGGERS = ('aiohttp', 'urllib3', 'redis', 'elasticsearch', 'elastic_transport', 'asyncio')


class JSONFormatter(logging.Formatter):
    """Formats a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        entry.update(getattr(record, 'context', {}))

        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class CrawlerLogAdapter(logging.LoggerAdapter):
    """Attaches a fixed context (such as ``processor_id``) to every record."""

    def __init__(self, logger: logging.Logger, context: Optional[Dict[str, Any]] = None):
        super().__init__(logger, context or {})

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        context = dict(self.extra)
        context.update(kwargs.pop('extra', None) or {})
        kwargs['extra'] = {'context': context}
        return msg, kwargs

    def log_url_event(self, level: int, url: str, message: str, **context):
        """Log an event about one URL with the URL as a structured field."""
        self.log(level, message, extra={'url': url, **context})


def _rotating_handler(path: Path, level: int, max_bytes: int, backups: int,
                      formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backups, encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(config: Optional[LoggingConfig] = None) -> logging.Logger:
    """
    Configure the root logger from the ``logging`` config section.

    Returns:
        The configured root logger
    """
    config = config or LoggingConfig()

    log_file = Path(config.file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    error_log_file = log_file.parent / 'errors.log'

    formatter = JSONFormatter() if config.json else logging.Formatter(config.format)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    root_logger.addHandler(_rotating_handler(log_file, logging.DEBUG, CRAWL_LOG_MAX_BYTES, 5, formatter))
    root_logger.addHandler(_rotating_handler(error_log_file, logging.ERROR, ERROR_LOG_MAX_BYTES, 3, formatter))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info(
        f"Logging to {log_file} (errors: {error_log_file}), "
        f"level={config.level}, json={config.json}"
    )
    return root_logger


def get_crawler_logger(name: str, **context) -> CrawlerLogAdapter:
    """Return a logger that adds ``context`` to every record it emits."""
    return CrawlerLogAdapter(logging.getLogger(name), context)


def log_system_info():
    """Log platform and interpreter information."""
    logger = logging.getLogger(__name__)
    logger.info(f"Platform: {platform.platform()} ({platform.machine()})")
    logger.info(f"Python: {sys.version.split()[0]} ({platform.python_implementation()})")
