"""
Storage layer for the web crawler system.
"""

from .index_store import (
    IndexStore, ElasticsearchIndexStore, FileIndexStore, create_index_store, get_index_name
)
from .duplicate_detector import DuplicateDetector

__all__ = [
    'IndexStore', 'ElasticsearchIndexStore', 'FileIndexStore', 'create_index_store',
    'get_index_name', 'DuplicateDetector'
]
