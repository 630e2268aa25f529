"""Core interfaces for the signal scanner.

Collaborator failure policy, applied by the scan pipeline:

=====================  ==========  ===========================================
Collaborator           Policy      Effect of an exception / timeout
=====================  ==========  ===========================================
DiscoveryFeed          fail open   cycle sees no candidates
PairDetailsSource      fail open   details treated as missing; holder gate
                                   later rejects HOLDER_DATA_UNAVAILABLE
SecurityScanner        fail closed token rejected SECURITY_CHECK_FAILED
TweetSource            fail open   no tweets, social contribution 0
SocialScorer           fail open   social contribution 0
Persistence (read)     fail open   treated as "no prior record"
Persistence (write)    logged      error logged, cycle continues
AlertSink              logged      no alert, token cached ALERT_FAILED
=====================  ==========  ===========================================
"""

from typing import Protocol, runtime_checkable

from .types import (
    MemeWatchItem,
    PairDetails,
    ScoreResult,
    SecurityVerdict,
    SeenTokenRecord,
    SocialScore,
    TokenSnapshot,
)


class DiscoveryFeed(Protocol):
    """Source of fresh candidate tokens."""

    async def fetch_candidates(self) -> list[TokenSnapshot]:
        """Fetch the current candidate list (best effort, may be empty)."""
        ...


class PairDetailsSource(Protocol):
    """Holder and security enrichment for a single token."""

    async def fetch_details(self, mint: str) -> PairDetails | None:
        """Fetch holder/security details or None when unavailable."""
        ...


class SecurityScanner(Protocol):
    """External token security scanner."""

    async def check_security(self, mint: str) -> SecurityVerdict:
        """Return whether the token looks safe."""
        ...


class TweetSource(Protocol):
    """Source of recent tweets mentioning a token."""

    async def search(self, token: TokenSnapshot) -> list[str]:
        """Return recent tweet texts for the token."""
        ...


class SocialScorer(Protocol):
    """Social/sentiment scorer."""

    async def score_social(
        self, token: TokenSnapshot, tweets: list[str]
    ) -> SocialScore | None:
        """Score social signal, None when scoring was not possible."""
        ...


@runtime_checkable
class AlertSink(Protocol):
    """Alert sink protocol."""

    async def send_alert(
        self, narrative: str, token: TokenSnapshot, score: ScoreResult
    ) -> str | None:
        """Send a token alert and return the message id."""
        ...

    async def push(self, message: str) -> None:
        """Push a plain admin message."""
        ...


class Persistence(Protocol):
    """Data persistence protocol."""

    # Seen tokens / cooldowns
    async def get_seen_token(self, mint: str) -> SeenTokenRecord | None:
        """Load the alert history record for a token."""
        ...

    async def save_seen_token(self, mint: str, record: SeenTokenRecord) -> None:
        """Upsert a token record, preserving the earliest first_seen_at."""
        ...

    # Performance tracking
    async def record_performance(
        self,
        mint: str,
        symbol: str,
        alert_mc: float,
        entry_price: float,
        score: int,
        phase: str,
        ts: float | None = None,
    ) -> int:
        """Store a performance-tracking row for an alerted token."""
        ...

    # Watchlist
    async def load_watchlist(self) -> list[MemeWatchItem]:
        """Load all watchlist items."""
        ...
