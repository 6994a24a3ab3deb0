"""In-process, time-bounded store of scraped question records."""

from __future__ import annotations

import logging
import os
import threading
from datetime import UTC, datetime, timedelta
from typing import Iterable

from models import ALL_TOPICS_KEY, CacheEntry, QuestionRecord

CACHE_TTL_HOURS = float(os.getenv("CACHE_TTL_HOURS", "24"))
CACHE_MAX_ENTRIES = int(os.getenv("CACHE_MAX_ENTRIES", "64"))

LOGGER = logging.getLogger(__name__)


def topic_key(topic_filter: str | None) -> str:
    """Normalize a caller topic filter into a cache key ("" -> "all")."""
    key = (topic_filter or "").strip().lower()
    return key or ALL_TOPICS_KEY


class QuestionCache:
    """Keyed cache of immutable CacheEntry objects.

    Entries are replaced whole under a lock and never edited in place, so a
    reader holding an entry always sees one complete generation of records.
    Adding a key beyond max_entries evicts the oldest entry. The cache
    performs no I/O of its own.
    """

    def __init__(self, ttl: timedelta | None = None, max_entries: int | None = None) -> None:
        self.ttl = ttl if ttl is not None else timedelta(hours=CACHE_TTL_HOURS)
        self.max_entries = max(1, max_entries or CACHE_MAX_ENTRIES)
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str | None) -> CacheEntry | None:
        with self._lock:
            return self._entries.get(topic_key(key))

    def put(
        self,
        key: str | None,
        records: Iterable[QuestionRecord],
        fetched_at: datetime | None = None,
    ) -> CacheEntry:
        """Swap in a new generation of records for key and return its entry."""
        entry = CacheEntry(
            key=topic_key(key),
            payload=tuple(records),
            fetched_at=fetched_at or datetime.now(UTC),
        )
        evicted = None
        with self._lock:
            if entry.key not in self._entries and len(self._entries) >= self.max_entries:
                evicted = min(self._entries.values(), key=lambda item: item.fetched_at).key
                del self._entries[evicted]
            self._entries[entry.key] = entry
        if evicted is not None:
            LOGGER.info("Cache evicted key=%s max_entries=%s", evicted, self.max_entries)
        LOGGER.info("Cache put key=%s records=%s", entry.key, len(entry.payload))
        return entry

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def is_fresh(self, entry: CacheEntry, now: datetime | None = None) -> bool:
        now = now or datetime.now(UTC)
        return now - entry.fetched_at < self.ttl

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
