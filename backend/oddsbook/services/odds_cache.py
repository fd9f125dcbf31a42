"""
backend/oddsbook/services/odds_cache.py

Purpose:
    Process-local TTL cache for provider responses. Concurrent get/set on the
    same key is tolerated: last write wins, and a miss simply triggers
    another upstream fetch.

Dependencies:
    - time
"""

from __future__ import annotations

import time
from typing import Any, Optional

from oddsbook.config import settings


class TTLCache:
    """In-memory cache with a per-entry TTL."""

    def __init__(self, default_ttl: int):
        self.default_ttl = default_ttl
        self._data: dict[str, tuple[float, Any]] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._data.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if time.monotonic() >= expires_at:
            self._data.pop(key, None)
            return None
        return value

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        self._data[key] = (time.monotonic() + ttl, value)
        self._cleanup()

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)

    def _cleanup(self) -> None:
        """Remove expired entries to prevent unbounded memory growth."""
        now = time.monotonic()
        expired = [k for k, (expires_at, _) in self._data.items() if expires_at <= now]
        for k in expired:
            del self._data[k]


odds_cache = TTLCache(default_ttl=settings.ODDS_CACHE_TTL_SECONDS)
scores_cache = TTLCache(default_ttl=settings.SCORES_CACHE_TTL_SECONDS)
