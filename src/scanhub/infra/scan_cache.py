from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from ..core.domain.models import CacheEntry, CacheStatistics

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600.0
DEFAULT_MAX_ENTRIES = 100
DEFAULT_CLEANUP_INTERVAL_SECONDS = 300.0
EVICTION_FRACTION = 0.1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScanCache:
    """In-memory (repository, commit) -> scan report cache.

    Entries expire after their TTL and are dropped lazily on access or by
    the background sweeper. When the cache is full, inserting a new key
    evicts the oldest tenth of the entries (at least one).
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        cleanup_interval_seconds: float = DEFAULT_CLEANUP_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._cleanup_interval = cleanup_interval_seconds
        self._clock = clock
        self._wall_clock = wall_clock
        self._entries: dict[tuple[str, str], CacheEntry] = {}
        self._lock = threading.RLock()
        self._stop = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ---- lookup ----

    def get(self, repo_url: str, commit_hash: str) -> Optional[Any]:
        key = (repo_url, commit_hash)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug("cache_miss", extra={"repo_url": repo_url, "commit_hash": commit_hash})
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                logger.debug("cache_expired", extra={"repo_url": repo_url, "commit_hash": commit_hash})
                return None
            logger.debug("cache_hit", extra={"repo_url": repo_url, "commit_hash": commit_hash})
            return entry.payload

    def entries_for(self, repo_url: str) -> list[CacheEntry]:
        """Live entries of one repository, newest first."""
        with self._lock:
            now = self._clock()
            live = [e for e in self._entries.values() if e.repo_url == repo_url and not e.is_expired(now)]
        return sorted(live, key=lambda e: e.created_at, reverse=True)

    def most_recent(self, repo_url: str) -> Optional[Any]:
        entries = self.entries_for(repo_url)
        return entries[0].payload if entries else None

    def has_entries(self, repo_url: str) -> bool:
        return bool(self.entries_for(repo_url))

    def cached_repositories(self) -> list[str]:
        with self._lock:
            now = self._clock()
            repos = {e.repo_url for e in self._entries.values() if not e.is_expired(now)}
        return sorted(repos)

    # ---- mutation ----

    def put(self, repo_url: str, commit_hash: str, payload: Any, ttl: Optional[float] = None) -> None:
        key = (repo_url, commit_hash)
        with self._lock:
            if key in self._entries:
                # replacing an entry never triggers eviction
                del self._entries[key]
            elif len(self._entries) >= self._max_entries:
                self._evict()
            self._entries[key] = CacheEntry(
                repo_url=repo_url,
                commit_hash=commit_hash,
                payload=payload,
                created_at=self._clock(),
                ttl_seconds=self._ttl if ttl is None else ttl,
                created_wall=self._wall_clock(),
            )
        logger.debug("cache_stored", extra={"repo_url": repo_url, "commit_hash": commit_hash})

    def _evict(self) -> None:
        # caller holds the lock
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for key in expired:
            del self._entries[key]
        if len(self._entries) < self._max_entries:
            return
        ordered = sorted(self._entries.items(), key=lambda item: item[1].created_at)
        count = max(1, int(len(ordered) * EVICTION_FRACTION))
        for key, _ in ordered[:count]:
            del self._entries[key]
        logger.info("cache_evicted", extra={"evicted": count, "remaining": len(self._entries)})

    def invalidate_repository(self, repo_url: str) -> int:
        with self._lock:
            keys = [k for k in self._entries if k[0] == repo_url]
            for key in keys:
                del self._entries[key]
        logger.info("cache_invalidated", extra={"repo_url": repo_url, "removed": len(keys)})
        return len(keys)

    def invalidate_entry(self, repo_url: str, commit_hash: str) -> bool:
        with self._lock:
            removed = self._entries.pop((repo_url, commit_hash), None) is not None
        if removed:
            logger.info("cache_entry_invalidated", extra={"repo_url": repo_url, "commit_hash": commit_hash})
        return removed

    def clear(self) -> int:
        with self._lock:
            size = len(self._entries)
            self._entries.clear()
        logger.info("cache_cleared", extra={"removed": size})
        return size

    def sweep_expired(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("cache_swept", extra={"removed": len(expired)})
        return len(expired)

    def stats(self) -> CacheStatistics:
        """Counts live entries only; expired ones awaiting the sweeper are left out."""
        with self._lock:
            now = self._clock()
            entries = [e for e in self._entries.values() if not e.is_expired(now)]
        if not entries:
            return CacheStatistics(total_entries=0, repositories=0)
        stamps = sorted(e.created_wall for e in entries)
        return CacheStatistics(
            total_entries=len(entries),
            repositories=len({e.repo_url for e in entries}),
            oldest=stamps[0],
            newest=stamps[-1],
        )

    # ---- background sweeper ----

    def start(self) -> None:
        """Start the daemon thread that periodically drops expired entries."""
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()
        self._sweeper = threading.Thread(target=self._run_sweeper, name="scanhub-cache-sweeper", daemon=True)
        self._sweeper.start()

    def stop(self) -> None:
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=5)
            self._sweeper = None

    def _run_sweeper(self) -> None:
        while not self._stop.wait(self._cleanup_interval):
            self.sweep_expired()
