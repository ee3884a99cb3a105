"""
In-memory access token cache.

Tokens are keyed by (connection_id, direction) and expire at the provider's
expiry minus a safety margin, so a cached token is never handed out when it is
about to stop working. The cache is bounded: expired entries are evicted on
every write, and when max_entries is exceeded the entry closest to expiry is
dropped.

One instance is owned by each TokenService; there is no module-level cache.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta

from sync_beds24.utils.datetime import ensure_utc, utc_now

CacheKey = tuple[str, str]


class TokenCache:
    """
    Thread-safe token cache with expiry-based eviction.

    Attributes:
        safety_margin: Time before provider expiry at which a token counts as expired
        max_entries: Upper bound on cached tokens (two per connection: read and write)

    Example:
        >>> cache = TokenCache(max_entries=100, safety_margin_seconds=60)
        >>> cache.set("conn-1", "read", "tok", utc_now() + timedelta(hours=1))
        >>> cache.get("conn-1", "read")
        'tok'
        >>> cache.invalidate("conn-1")
    """

    def __init__(self, max_entries: int = 1024, safety_margin_seconds: int = 60):
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self.safety_margin = timedelta(seconds=safety_margin_seconds)
        self._cache: dict[CacheKey, tuple[str, datetime]] = {}
        self._lock = threading.Lock()

    def get(self, connection_id: str, direction: str) -> str | None:
        """
        Get a cached token that stays valid for longer than the safety margin.

        Returns:
            The token, or None if missing or too close to expiry
        """
        key = (connection_id, direction)
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            token, valid_until = entry
            if utc_now() < valid_until:
                return token
            del self._cache[key]
            return None

    def set(self, connection_id: str, direction: str, token: str, expires_at: datetime) -> None:
        """
        Cache token until expires_at minus the safety margin.

        Tokens that are already inside the safety margin are not cached.
        """
        valid_until = ensure_utc(expires_at) - self.safety_margin  # type: ignore[operator]
        now = utc_now()
        with self._lock:
            self._evict_expired(now)
            if valid_until <= now:
                self._cache.pop((connection_id, direction), None)
                return
            self._cache[(connection_id, direction)] = (token, valid_until)
            while len(self._cache) > self.max_entries:
                oldest = min(self._cache, key=lambda k: self._cache[k][1])
                del self._cache[oldest]

    def invalidate(self, connection_id: str, direction: str | None = None) -> None:
        """
        Drop the cached token(s) of a connection.

        Args:
            connection_id: Connection whose tokens are dropped
            direction: "read" or "write"; None drops both
        """
        with self._lock:
            if direction is not None:
                self._cache.pop((connection_id, direction), None)
                return
            for key in [k for k in self._cache if k[0] == connection_id]:
                del self._cache[key]

    def size(self) -> int:
        """Number of tokens currently cached (expired ones included until evicted)."""
        with self._lock:
            return len(self._cache)

    def _evict_expired(self, now: datetime) -> None:
        for key in [k for k, (_, valid_until) in self._cache.items() if valid_until <= now]:
            del self._cache[key]
