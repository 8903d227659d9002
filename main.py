#!/usr/bin/env python3
"""
Main entry point for the web crawler system.
"""

import asyncio
import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

import redis.asyncio as redis

from webcrawler.crawler import CrawlerService, WebFetcher, create_link_queue
from webcrawler.crawler.link_queue import SHARED
from webcrawler.processor import ProcessorManager
from webcrawler.storage import IndexStore, create_index_store, get_index_name
from webcrawler.utils.config import Config, load_config
from webcrawler.utils.logger import log_system_info, setup_logging
from webcrawler.utils.monitoring import CrawlerMetrics


class CrawlerApp:
    """Main application class for the web crawler."""

    def __init__(self):
        self.manager: Optional[ProcessorManager] = None
        self.redis_client: Optional[redis.Redis] = None
        self.index_store: Optional[IndexStore] = None
        self.logger = logging.getLogger(__name__)
        self._shutdown_event = asyncio.Event()

    def setup_signal_handlers(self):
        """Setup signal handlers for graceful shutdown."""
        def signal_handler(signum, frame):
            self.logger.info(f"Received signal {signum}, initiating shutdown...")
            self._shutdown_event.set()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    def _create_redis_client(self, config: Config) -> redis.Redis:
        return redis.Redis(
            host=config.redis.host,
            port=config.redis.port,
            db=config.redis.db,
            password=config.redis.password
        )

    async def run(self, config_path: str, urls: Optional[List[str]] = None,
                  wait: bool = False, dry_run: bool = False) -> int:
        """Run the web crawler."""
        try:
            config = load_config(config_path)
            setup_logging(config.logging)
            log_system_info()
            self.setup_signal_handlers()

            crawler_config = config.crawler
            seeds = urls or crawler_config.seed_urls

            self.logger.info("=== WEB CRAWLER STARTING ===")
            self.logger.info(f"Configuration loaded from: {config_path}")
            self.logger.info(f"Seed URLs: {seeds}")
            self.logger.info(f"Max depth: {crawler_config.max_depth}")
            self.logger.info(f"Workers: {crawler_config.worker_count}")
            self.logger.info(f"Frontier type: {config.frontier.type}")
            self.logger.info(
                f"Index: {get_index_name(crawler_config.index_prefix, config.elasticsearch.tenant_id) or 'disabled'}"
            )

            if dry_run:
                self.logger.info("DRY RUN MODE: No actual crawling will be performed")
                await self._dry_run(config, seeds)
                return 0

            if not seeds:
                self.logger.error("No seed URLs configured and none given with --url")
                return 1

            metrics = CrawlerMetrics(config.monitoring)
            metrics.start_server()

            if config.frontier.type.lower() == SHARED:
                self.redis_client = self._create_redis_client(config)
            link_queue = create_link_queue(
                config.frontier.type, self.redis_client, crawler_config.queue_namespace
            )

            if crawler_config.index_prefix:
                self.index_store = create_index_store(config.elasticsearch)
                await self.index_store.initialize()

            self.manager = ProcessorManager(
                index_store=self.index_store,
                tenant_id=config.elasticsearch.tenant_id,
                metrics=metrics
            )
            service = CrawlerService(link_queue, crawler_config, self.manager, metrics=metrics)

            crawl_task = asyncio.create_task(self._crawl_all(service, seeds, wait))
            shutdown_task = asyncio.create_task(self._shutdown_event.wait())

            # Wait for either crawling to complete or shutdown signal
            done, pending = await asyncio.wait(
                [crawl_task, shutdown_task],
                return_when=asyncio.FIRST_COMPLETED
            )

            for task in pending:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

            if shutdown_task in done:
                self.logger.info("Shutdown requested, stopping processors...")
                await self.manager.stop_all()
            else:
                crawl_task.result()

        except Exception as e:
            self.logger.error(f"Fatal error: {e}", exc_info=True)
            return 1

        finally:
            await self._close()
            self.logger.info("=== WEB CRAWLER FINISHED ===")

        return 0

    async def _crawl_all(self, service: CrawlerService, seeds: List[str], wait: bool):
        """Traverse every seed, then wait for the pool to drain the queue."""
        for seed in seeds:
            result = await service.crawl(seed, wait_for_completion=wait)
            self.logger.info(
                f"Crawl of {seed}: {result.pages_fetched} pages fetched, "
                f"{result.links_enqueued} links enqueued"
            )

        if self.manager is not None:
            await self.manager.await_all()
            for status in self.manager.statuses():
                self.logger.info(
                    f"{status.id}: {status.state.value}, processed={status.processed_count}"
                    + (f", error={status.last_error}" if status.last_error else "")
                )

    async def _close(self):
        if self.manager is not None and self.manager.is_running():
            await self.manager.stop_all()
        if self.index_store is not None:
            await self.index_store.close()
        if self.redis_client is not None:
            await self.redis_client.aclose()

    async def _dry_run(self, config: Config, seeds: List[str]):
        """Perform a dry run to test configuration and connections."""
        if config.frontier.type.lower() == SHARED:
            self.logger.info("Testing Redis connection...")
            try:
                redis_client = self._create_redis_client(config)
                await redis_client.ping()
                await redis_client.aclose()
                self.logger.info("✓ Redis connection successful")
            except Exception as e:
                self.logger.error(f"✗ Redis connection failed: {e}")

        if config.crawler.index_prefix:
            self.logger.info("Testing index store configuration...")
            try:
                index_store = create_index_store(config.elasticsearch)
                await index_store.initialize()
                await index_store.close()
                self.logger.info("✓ Index store initialization successful")
            except Exception as e:
                self.logger.error(f"✗ Index store initialization failed: {e}")

        self.logger.info("Testing fetcher configuration...")
        try:
            async with WebFetcher(
                user_agent=config.crawler.user_agent,
                request_timeout_ms=config.crawler.request_timeout_ms,
                max_concurrent_requests=1
            ) as fetcher:
                if seeds:
                    result = await fetcher.fetch(seeds[0])
                    if result.error:
                        self.logger.warning(f"Test fetch failed: {result.error}")
                    else:
                        self.logger.info(f"✓ Test fetch successful: {result.status_code}")
        except Exception as e:
            self.logger.error(f"✗ Fetcher test failed: {e}")

        self.logger.info("Dry run completed")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Web Crawler System",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                                  # Run with default config.yaml
  python main.py --config my_config.yaml          # Run with custom config
  python main.py --url https://example.com/       # Crawl a URL instead of the seeds
  python main.py --wait                           # Drain the queue after every seed
  python main.py --dry-run                        # Test configuration only
        """
    )

    parser.add_argument(
        '--config',
        default='config.yaml',
        help='Path to configuration file (default: config.yaml)'
    )

    parser.add_argument(
        '--url',
        action='append',
        help='Entry URL to crawl (repeatable, overrides seed_urls)'
    )

    parser.add_argument(
        '--wait',
        action='store_true',
        help='Wait for the processors to drain the queue after each entry URL'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Test configuration without actually crawling'
    )

    parser.add_argument(
        '--version',
        action='version',
        version='Web Crawler System 1.0.0'
    )

    args = parser.parse_args()

    if not Path(args.config).exists():
        print(f"Error: Configuration file '{args.config}' not found.")
        print("Please create a config.yaml file or specify a different path with --config")
        return 1

    app = CrawlerApp()
    try:
        return asyncio.run(app.run(
            config_path=args.config,
            urls=args.url,
            wait=args.wait,
            dry_run=args.dry_run
        ))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 1
    except Exception as e:
        print(f"Fatal error: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
