"""
Configuration management for the web crawler system.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..errors import ConfigurationError
from ..extractor.rules import ClassNameRule, ContentRule, ElementStyleRule, MinCharacterRule, TagNameRule

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "WebCrawler/1.0"


@dataclass
class ContentRulesConfig:
    """Declarative content rules for a page or for all pages."""
    min_character: Optional[int] = None
    tag_name: Optional[str] = None
    class_names: Optional[str] = None  # comma-separated
    style: Optional[str] = None

    def build_rules(self) -> List[ContentRule]:
        rules: List[ContentRule] = []
        if self.min_character is not None and self.min_character > 0:
            rules.append(MinCharacterRule(self.min_character))
        if self.tag_name and self.tag_name.strip():
            rules.append(TagNameRule(self.tag_name.strip()))
        if self.class_names and self.class_names.strip():
            for class_name in self.class_names.split(','):
                if class_name.strip():
                    rules.append(ClassNameRule(class_name.strip()))
        if self.style and self.style.strip():
            rules.append(ElementStyleRule(self.style.strip()))
        return rules


@dataclass
class PageConfig:
    """Page-specific rule override keyed by a URL regex."""
    url_pattern: str
    match_all: bool = False
    content_rules: Optional[ContentRulesConfig] = None


@dataclass
class CrawlerConfig:
    """Configuration for crawler behavior."""
    seed_urls: List[str] = field(default_factory=list)
    max_depth: int = 1
    include_url_patterns: List[str] = field(default_factory=list)
    exclude_url_patterns: List[str] = field(default_factory=list)
    user_agent: str = DEFAULT_USER_AGENT
    request_timeout_ms: int = 10000
    worker_count: int = 15
    queue_namespace: str = "crawler"
    index_prefix: Optional[str] = None
    content_rules: Optional[ContentRulesConfig] = None
    pages: List[PageConfig] = field(default_factory=list)

    def __post_init__(self):
        if not self.user_agent or not self.user_agent.strip():
            self.user_agent = DEFAULT_USER_AGENT
        if not self.queue_namespace or not self.queue_namespace.strip():
            self.queue_namespace = "crawler"
        if self.index_prefix is not None and not self.index_prefix.strip():
            self.index_prefix = None
        self.rebuild_rules()

    def rebuild_rules(self):
        """Rebuild cached rule lists after changing ``content_rules`` or ``pages``."""
        self._generic_rules = self.content_rules.build_rules() if self.content_rules else []
        self._page_rules = []
        for page in self.pages:
            self._register_page(page)

    def add_page_config(self, page: PageConfig):
        """Append a page override at runtime."""
        if page is None or not page.url_pattern or not page.url_pattern.strip():
            return
        self.pages.append(page)
        self._register_page(page)

    def _register_page(self, page: PageConfig):
        if page is None or not page.url_pattern:
            return
        try:
            pattern = re.compile(page.url_pattern)
        except re.error as e:
            logger.warning(f"Invalid page url_pattern {page.url_pattern!r} ({e}), ignored")
            return
        rules = page.content_rules.build_rules() if page.content_rules else []
        self._page_rules.append((pattern, page, rules))

    def _find_page(self, url: Optional[str]):
        if not url or not url.strip():
            return None
        for pattern, page, rules in self._page_rules:
            if pattern.fullmatch(url):
                return page, rules
        return None

    def content_rules_for(self, url: Optional[str]) -> List[ContentRule]:
        """
        Rules of the first page override whose pattern matches the whole URL,
        otherwise the generic rules.
        """
        found = self._find_page(url)
        if found is not None:
            return list(found[1])
        return list(self._generic_rules)

    def match_all_for(self, url: Optional[str]) -> bool:
        """
        The ``match_all`` flag of the first matching page override.

        Kept for configuration compatibility; extraction does not consult it.
        """
        found = self._find_page(url)
        return bool(found and found[0].match_all)


@dataclass
class FrontierConfig:
    """Link queue backing selection."""
    type: str = "local"


@dataclass
class RedisConfig:
    """Configuration for Redis."""
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None


@dataclass
class ElasticsearchConfig:
    """Configuration for the Elasticsearch index store."""
    hosts: List[str] = field(default_factory=lambda: ["http://localhost:9200"])
    tenant_id: str = "default"
    username: Optional[str] = None
    password: Optional[str] = None
    data_directory: Optional[str] = None  # file-backed store instead of Elasticsearch when set


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    file: str = "logs/crawler.log"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    json: bool = False


@dataclass
class MonitoringConfig:
    """Configuration for monitoring."""
    prometheus_port: int = 8000
    metrics_enabled: bool = False


@dataclass
class Config:
    """Main configuration class."""
    crawler: CrawlerConfig = field(default_factory=CrawlerConfig)
    frontier: FrontierConfig = field(default_factory=FrontierConfig)
    redis: RedisConfig = field(default_factory=RedisConfig)
    elasticsearch: ElasticsearchConfig = field(default_factory=ElasticsearchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)


def _rules_from_dict(data: Optional[Dict[str, Any]]) -> Optional[ContentRulesConfig]:
    if not data:
        return None
    return ContentRulesConfig(**data)


def _crawler_from_dict(data: Dict[str, Any]) -> CrawlerConfig:
    data = dict(data)
    data['content_rules'] = _rules_from_dict(data.get('content_rules'))
    pages = []
    for page in data.get('pages') or []:
        page = dict(page)
        page['content_rules'] = _rules_from_dict(page.get('content_rules'))
        pages.append(PageConfig(**page))
    data['pages'] = pages
    data['include_url_patterns'] = list(data.get('include_url_patterns') or [])
    data['exclude_url_patterns'] = list(data.get('exclude_url_patterns') or [])
    return CrawlerConfig(**data)


def config_from_dict(config_data: Optional[Dict[str, Any]]) -> Config:
    """Build a Config from parsed YAML. Missing sections use defaults."""
    config_data = config_data or {}
    try:
        return Config(
            crawler=_crawler_from_dict(config_data.get('crawler') or {}),
            frontier=FrontierConfig(**(config_data.get('frontier') or {})),
            redis=RedisConfig(**(config_data.get('redis') or {})),
            elasticsearch=ElasticsearchConfig(**(config_data.get('elasticsearch') or {})),
            logging=LoggingConfig(**(config_data.get('logging') or {})),
            monitoring=MonitoringConfig(**(config_data.get('monitoring') or {})),
        )
    except TypeError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: str = "config.yaml"):
        self.config_path = Path(config_path)
        self._config: Optional[Config] = None

    def load_config(self) -> Config:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        with open(self.config_path, 'r') as file:
            config_data = yaml.safe_load(file)

        self._config = config_from_dict(config_data)
        self._validate_config()
        return self._config

    def _validate_config(self):
        """Validate configuration values."""
        if not self._config:
            raise ConfigurationError("Configuration not loaded")

        crawler = self._config.crawler
        if crawler.max_depth < 0:
            raise ConfigurationError("max_depth must be non-negative")

        if crawler.request_timeout_ms <= 0:
            raise ConfigurationError("request_timeout_ms must be positive")

        if crawler.worker_count < 1:
            raise ConfigurationError("worker_count must be at least 1")

        if self._config.frontier.type.lower() not in ['local', 'shared']:
            raise ConfigurationError("Frontier type must be 'local' or 'shared'")

        logger.info("Configuration validation passed")

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            raise ConfigurationError("Configuration not loaded. Call load_config() first.")
        return self._config


# Global config manager instance
config_manager = ConfigManager()


def get_config() -> Config:
    """Get the global configuration instance."""
    return config_manager.config


def load_config(config_path: str = "config.yaml") -> Config:
    """Load configuration from file."""
    global config_manager
    config_manager = ConfigManager(config_path)
    return config_manager.load_config()
