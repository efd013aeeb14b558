"""Bounded LRU cache of resolved transclusions.

One cache belongs to one open document. Entries are invalidated by source id
when a transcluded source changes, and the whole cache is cleared when the
document closes. All operations take the same lock, so the cache can be
shared by the event loop, parser worker threads and the file watcher.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from datetime import UTC, datetime
from typing import Any

import structlog

from .model import CacheEntry, OrgTree, SourceId, TransclusionDirective

log = structlog.get_logger()

DEFAULT_MAX_SIZE = 50


def cache_key(directive: TransclusionDirective) -> str:
    return directive.cache_key


class TransclusionCache:
    def __init__(self, max_size: int = DEFAULT_MAX_SIZE) -> None:
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")
        self.max_size = max_size
        # Insertion order doubles as recency order: first key is the LRU one
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, directive: TransclusionDirective) -> CacheEntry | None:
        """Cached entry for ``directive``; a hit marks it most recently used."""
        key = cache_key(directive)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                self._entries.move_to_end(key)
            return entry

    def put(
        self,
        directive: TransclusionDirective,
        content: OrgTree,
        source_id: SourceId,
        source_ref: Any,
        target_section: str | None = None,
    ) -> None:
        key = cache_key(directive)
        entry = CacheEntry(
            content=content,
            source_id=source_id,
            source_ref=source_ref,
            target_section=target_section,
            loaded_at=datetime.now(UTC),
        )
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_size:
                oldest, evicted = self._entries.popitem(last=False)
                log.debug("cache_evict", key=oldest, source_id=evicted.source_id)
            self._entries[key] = entry
            self._entries.move_to_end(key)

    def invalidate(self, source_id: SourceId) -> int:
        """Drop every entry loaded from ``source_id``; returns how many."""
        with self._lock:
            stale = [k for k, e in self._entries.items() if e.source_id == source_id]
            for key in stale:
                del self._entries[key]
        if stale:
            log.debug("cache_invalidate", source_id=source_id, removed=len(stale))
        return len(stale)

    def source_ids_for(self, ref_id: str) -> set[SourceId]:
        """Source ids whose cached source reference has id ``ref_id``."""
        with self._lock:
            return {
                e.source_id
                for e in self._entries.values()
                if getattr(e.source_ref, "id", None) == ref_id
            }

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def keys(self) -> list[str]:
        """Cache keys, least recently used first."""
        with self._lock:
            return list(self._entries)

    @property
    def length(self) -> int:
        return len(self)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
