"""
Kiosk Print Service Labels
==========================

Fetching, caching and merging of ZPL label templates.
"""

from .cache import LabelCache, CacheItem, CacheEntry, MemoryStore, JsonFileStore
from .merge import merge_label_content
from .fetch import fetch_label

__all__ = [
    'LabelCache', 'CacheItem', 'CacheEntry', 'MemoryStore', 'JsonFileStore',
    'merge_label_content', 'fetch_label',
]
