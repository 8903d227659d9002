"""
Prometheus metrics for the web crawler system.
"""

import logging
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest
from prometheus_client import start_http_server

from .config import MonitoringConfig


class CrawlerMetrics:
    """Crawler metrics kept on a private Prometheus registry."""

    def __init__(self, config: Optional[MonitoringConfig] = None,
                 registry: Optional[CollectorRegistry] = None):
        self.config = config or MonitoringConfig()
        self.logger = logging.getLogger(__name__)
        self.registry = registry or CollectorRegistry()

        self.pages_processed = Counter(
            'crawler_pages_processed_total',
            'Total number of pages processed',
            ['status'],
            registry=self.registry
        )
        self.indexing_failures = Counter(
            'crawler_indexing_failures_total',
            'Total number of documents the index store rejected',
            registry=self.registry
        )
        self.links_enqueued = Counter(
            'crawler_links_enqueued_total',
            'Total number of links accepted by the link queue',
            registry=self.registry
        )
        self.fetch_duration = Histogram(
            'crawler_fetch_duration_seconds',
            'Fetch duration of processed pages',
            registry=self.registry
        )
        self.active_processors = Gauge(
            'crawler_active_processors',
            'Number of running processors',
            registry=self.registry
        )

    def start_server(self):
        """Start the Prometheus HTTP endpoint when metrics are enabled."""
        if not self.config.metrics_enabled:
            return

        try:
            start_http_server(self.config.prometheus_port, registry=self.registry)
            self.logger.info(f"Prometheus metrics server started on port {self.config.prometheus_port}")
        except Exception as e:
            self.logger.error(f"Failed to start Prometheus server: {e}")

    def record_page(self, status: str, fetch_duration_ms: Optional[int] = None):
        self.pages_processed.labels(status=status).inc()
        if fetch_duration_ms is not None:
            self.fetch_duration.observe(fetch_duration_ms / 1000)

    def record_indexing_failure(self):
        self.indexing_failures.inc()

    def record_links_enqueued(self, count: int = 1):
        if count > 0:
            self.links_enqueued.inc(count)

    def processor_started(self):
        self.active_processors.inc()

    def processor_finished(self):
        self.active_processors.dec()

    def get_value(self, name: str, labels: Optional[dict] = None) -> float:
        """Current value of a sample, 0 when it has not been recorded."""
        value = self.registry.get_sample_value(name, labels or {})
        return value if value is not None else 0.0

    def export(self) -> bytes:
        """Metrics in the Prometheus text exposition format."""
        return generate_latest(self.registry)
