"""
Label Cache
===========

Keyed cache for downloaded label templates with expiry and
single-flight updates: concurrent requests for the same key share one
updater call and all of them see its result (or its error).
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, TypeVar

from ..config import DATA_DIR

logger = logging.getLogger(__name__)

V = TypeVar('V')


@dataclass(frozen=True)
class CacheItem(Generic[V]):
    """What an updater produces: the value and when it stops being valid."""

    value: V
    expires_at: float  # epoch seconds


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """A stored item. Entries are replaced whole, never edited."""

    key: str
    value: V
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now


CacheUpdater = Callable[[str], Awaitable[CacheItem]]


# =============================================================================
# Stores
# =============================================================================

class MemoryStore:
    """Process-local store."""

    def __init__(self):
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def set(self, entry: CacheEntry) -> None:
        self._entries[entry.key] = entry

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)


class JsonFileStore(MemoryStore):
    """Store persisted as one JSON file per cache name under DATA_DIR."""

    def __init__(self, name: str, data_dir: Optional[str] = None):
        super().__init__()
        self.path = Path(data_dir or DATA_DIR) / f'cache-storage-{name}.json'
        self._load()

    def _load(self):
        try:
            if self.path.exists():
                with open(self.path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                self._entries = {k: CacheEntry(**v) for k, v in data.items()}
        except (OSError, ValueError, TypeError) as e:
            logger.warning("Failed to load cache %s, starting empty: %s", self.path, e)
            self._entries = {}

    def _save(self):
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump({k: asdict(v) for k, v in self._entries.items()}, f, indent=2)
        except OSError as e:
            logger.warning("Failed to save cache %s: %s", self.path, e)

    def set(self, entry: CacheEntry) -> None:
        super().set(entry)
        self._save()

    def delete(self, key: str) -> None:
        if self.get(key) is not None:
            super().delete(key)
            self._save()


# =============================================================================
# Cache
# =============================================================================

class LabelCache:
    """Single-flight cache over a store."""

    def __init__(self, name: str, store: Optional[MemoryStore] = None,
                 clock: Callable[[], float] = time.time):
        self.name = name
        self._store = store if store is not None else JsonFileStore(name)
        self._clock = clock
        self._in_flight: Dict[str, asyncio.Task] = {}

    def is_updating(self, key: str) -> bool:
        return key in self._in_flight

    async def get_or_update(self, key: str, updater: CacheUpdater) -> Any:
        """
        Return the cached value for `key`, running `updater` when it is
        missing or expired.

        Everything up to registering the in-flight update runs without
        yielding to the event loop, so two callers can never both start
        an update for the same key.
        """
        entry = self._store.get(key)
        if entry is not None:
            if not entry.is_expired(self._clock()):
                logger.debug("Cache %s hit: %s", self.name, key)
                return entry.value
            logger.debug("Cache %s expired: %s", self.name, key)
            self._store.delete(key)

        task = self._in_flight.get(key)
        if task is None:
            logger.debug("Cache %s miss: %s", self.name, key)
            task = asyncio.ensure_future(self._update(key, updater))
            self._in_flight[key] = task

        # One caller giving up must not cancel the update for the others
        return await asyncio.shield(task)

    async def _update(self, key: str, updater: CacheUpdater) -> Any:
        try:
            item = await updater(key)
            self._store.set(CacheEntry(key=key, value=item.value, expires_at=item.expires_at))
            return item.value
        finally:
            self._in_flight.pop(key, None)
