"""In-memory TTL cache of rejected tokens."""

import time
from collections.abc import Callable

import structlog

from ..core.types import RejectionCacheEntry, RejectionKind

logger = structlog.get_logger(__name__)


class RetryCache:
    """Map of token mint to rejection reason and expiry.

    Entries with an expiry in the future block re-evaluation; entries without
    an expiry block until the process restarts. The map is bounded: when it
    grows past ``maxsize`` the oldest inserted key is evicted.
    """

    def __init__(
        self,
        maxsize: int = 1000,
        now_fn: Callable[[], float] | None = None,
    ) -> None:
        """Initialize retry cache.

        Args:
            maxsize: Maximum number of cached tokens
            now_fn: Optional function to get current timestamp (for testing)
        """
        self.maxsize = maxsize
        self._now_fn = now_fn or time.time
        self._entries: dict[str, RejectionCacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, mint: str) -> bool:
        return mint in self._entries

    def get(self, mint: str) -> RejectionCacheEntry | None:
        """Return the blocking entry for a token, or None if absent or expired.

        Expired entries are left in place; ``sweep_expired`` removes them.
        """
        entry = self._entries.get(mint)
        if entry is None or entry.is_expired(self._now_fn()):
            return None
        return entry

    def peek(self, mint: str) -> RejectionCacheEntry | None:
        """Return the raw entry, expired or not."""
        return self._entries.get(mint)

    def set(self, mint: str, reason: str, ttl_seconds: float | None) -> RejectionCacheEntry:
        """Cache a rejection. ``ttl_seconds=None`` blocks until restart."""
        expires_at = None if ttl_seconds is None else self._now_fn() + ttl_seconds
        entry = RejectionCacheEntry(reason=reason, expires_at=expires_at)

        # Re-inserting moves the key to the newest position
        self._entries.pop(mint, None)
        self._entries[mint] = entry

        while len(self._entries) > self.maxsize:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            logger.debug("Evicted oldest rejection", token_mint=oldest)

        return entry

    def reject(self, mint: str, kind: RejectionKind) -> RejectionCacheEntry:
        """Cache a rejection using the TTL policy of its kind."""
        return self.set(mint, kind.code, kind.ttl_seconds)

    def evict(self, mint: str) -> None:
        self._entries.pop(mint, None)

    def sweep_expired(self) -> int:
        """Delete every expired entry and return how many were removed."""
        now = self._now_fn()
        expired = [mint for mint, entry in self._entries.items() if entry.is_expired(now)]
        for mint in expired:
            del self._entries[mint]

        if expired:
            logger.debug("Swept expired rejections", count=len(expired))
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
