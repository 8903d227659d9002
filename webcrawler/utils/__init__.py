"""
Utility modules for the web crawler system.
"""

from .config import Config, ConfigManager, load_config, get_config
from .logger import setup_logging, get_crawler_logger
from .monitoring import CrawlerMetrics

__all__ = [
    'Config', 'ConfigManager', 'load_config', 'get_config',
    'setup_logging', 'get_crawler_logger', 'CrawlerMetrics'
]
