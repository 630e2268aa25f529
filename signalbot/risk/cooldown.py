"""Alert cooldown and global rate limiting."""

import asyncio
import time
from collections.abc import Callable

import structlog

from ..core.interfaces import Persistence
from ..core.types import AlertDecision, SeenTokenRecord

logger = structlog.get_logger(__name__)

RATE_WINDOW_SECONDS = 3600.0
GLOBAL_LIMIT_REASON = "Global hourly limit reached"


class CooldownManager:
    """Gate alerts by a global hourly limit and a per-token cooldown.

    The hourly window is kept in memory. A check that passes the global limit
    reserves its slot in the window before anything is awaited, so concurrent
    workers cannot both take the last slot. The reservation is dropped again
    when the check denies, or when the caller calls ``release`` after a failed
    send; ``record_alert`` confirms it.

    Per-token alert history lives in the persistence layer. Reads that fail
    are treated as "no prior record" (fail open); writes that fail are logged
    at error level, accepting the risk of a duplicate alert later.
    """

    def __init__(
        self,
        storage: Persistence,
        max_alerts_per_hour: int = 12,
        cooldown_minutes: float = 120,
        realert_min_score: int = 80,
        timeout_seconds: float = 15.0,
        now_fn: Callable[[], float] | None = None,
    ) -> None:
        """Initialize cooldown manager.

        Args:
            storage: Persistence backend holding seen-token records
            max_alerts_per_hour: Global alert budget per sliding hour
            cooldown_minutes: Strict per-token cooldown window
            realert_min_score: Minimum score to re-alert after the window
            timeout_seconds: Timeout for each persistence call
            now_fn: Optional function to get current timestamp (for testing)
        """
        self.storage = storage
        self.max_alerts_per_hour = max_alerts_per_hour
        self.cooldown_minutes = cooldown_minutes
        self.realert_min_score = realert_min_score
        self.timeout_seconds = timeout_seconds
        self._now_fn = now_fn or time.time
        self._alert_timestamps: list[float] = []
        self._reservations: dict[str, float] = {}

    def _prune_window(self, now: float) -> None:
        self._alert_timestamps = [
            ts for ts in self._alert_timestamps if now - ts < RATE_WINDOW_SECONDS
        ]

    @property
    def alerts_in_window(self) -> int:
        self._prune_window(self._now_fn())
        return len(self._alert_timestamps)

    def release(self, mint: str) -> None:
        """Give back a slot reserved by ``can_alert``. No-op without one."""
        reserved_at = self._reservations.pop(mint, None)
        if reserved_at is None:
            return
        try:
            self._alert_timestamps.remove(reserved_at)
        except ValueError:
            # Already pruned out of the window
            pass

    async def _load_record(self, mint: str) -> SeenTokenRecord | None:
        try:
            return await asyncio.wait_for(
                self.storage.get_seen_token(mint), timeout=self.timeout_seconds
            )
        except Exception as e:
            logger.error(
                "Failed to read seen-token record, assuming none",
                token_mint=mint,
                error=str(e) or type(e).__name__,
            )
            return None

    async def can_alert(self, mint: str, current_score: int) -> AlertDecision:
        """Check whether an alert for this token is allowed now.

        An allowed decision holds a slot in the hourly window until
        ``record_alert`` or ``release`` is called for the token.
        """
        now = self._now_fn()

        self._prune_window(now)
        if len(self._alert_timestamps) >= self.max_alerts_per_hour:
            logger.info(
                "Alert denied by global limit",
                token_mint=mint,
                alerts_in_window=len(self._alert_timestamps),
            )
            return AlertDecision(allowed=False, reason=GLOBAL_LIMIT_REASON)

        self.release(mint)
        self._alert_timestamps.append(now)
        self._reservations[mint] = now

        try:
            decision = self._check_record(
                mint, current_score, now, await self._load_record(mint)
            )
        except BaseException:
            self.release(mint)
            raise

        if not decision.allowed:
            self.release(mint)
        return decision

    def _check_record(
        self,
        mint: str,
        current_score: int,
        now: float,
        record: SeenTokenRecord | None,
    ) -> AlertDecision:
        if record is None or record.last_alert_at is None:
            return AlertDecision(allowed=True)

        minutes_since = (now - record.last_alert_at) / 60.0
        if minutes_since < self.cooldown_minutes:
            return AlertDecision(
                allowed=False,
                reason=(
                    f"Token cooldown ({minutes_since:.1f}m < {self.cooldown_minutes}m)"
                ),
            )

        if current_score < self.realert_min_score:
            return AlertDecision(
                allowed=False,
                reason=(
                    f"Re-alert needs score >= {self.realert_min_score} "
                    f"(got {current_score})"
                ),
            )

        logger.info(
            "Re-alert allowed",
            token_mint=mint,
            minutes_since=round(minutes_since, 1),
            score=current_score,
        )
        return AlertDecision(allowed=True)

    async def record_alert(
        self,
        mint: str,
        score: int,
        phase: str,
        price: float | None = None,
        symbol: str = "",
    ) -> None:
        """Record an alert in the hourly window and the persisted record."""
        now = self._now_fn()
        # A slot reserved by can_alert already counts toward the window
        if self._reservations.pop(mint, None) is None:
            self._alert_timestamps.append(now)

        existing = await self._load_record(mint)
        record = SeenTokenRecord(
            symbol=symbol or (existing.symbol if existing else ""),
            first_seen_at=existing.first_seen_at if existing else now,
            last_alert_at=now,
            last_score=score,
            last_phase=phase,
            last_price=price,
            stored_analysis=existing.stored_analysis if existing else None,
            raw_snapshot=existing.raw_snapshot if existing else None,
        )

        try:
            await asyncio.wait_for(
                self.storage.save_seen_token(mint, record), timeout=self.timeout_seconds
            )
        except Exception as e:
            logger.error(
                "Failed to persist alert record, duplicate alert possible",
                token_mint=mint,
                error=str(e) or type(e).__name__,
            )
            return

        logger.info(
            "Recorded alert",
            token_mint=mint,
            score=score,
            phase=phase,
            alerts_in_window=len(self._alert_timestamps),
        )

    def get_state_summary(self) -> dict:
        """Get current cooldown state summary."""
        return {
            "alerts_in_window": self.alerts_in_window,
            "max_alerts_per_hour": self.max_alerts_per_hour,
            "cooldown_minutes": self.cooldown_minutes,
            "realert_min_score": self.realert_min_score,
        }
