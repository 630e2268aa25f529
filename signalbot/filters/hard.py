"""Hard pass/fail gates applied before any scoring."""

import time
from collections.abc import Callable

import structlog

from ..core.types import FilterDecision, RejectionKind, TokenSnapshot
from .fake_pump import FakePumpDetector

logger = structlog.get_logger(__name__)

DEFAULT_BLACKLIST = (
    "nazi",
    "isis",
    "terror",
    "drug",
    "hitman",
    "pedo",
    "child",
    "rape",
    "hitler",
)


class HardFilter:
    """Ordered sequence of binary checks, short-circuiting on the first failure."""

    def __init__(
        self,
        blacklist: tuple[str, ...] | list[str] = DEFAULT_BLACKLIST,
        min_age_minutes: float = 20,
        max_age_minutes: float = 1440,
        min_liquidity_usd: float = 5000.0,
        max_liq_mc_ratio: float = 0.90,
        min_liq_mc_ratio: float = 0.05,
        safe_zone_ratio: float = 0.10,
        safe_zone_min_liquidity_usd: float = 20000.0,
        min_mc_usd: float = 10000.0,
        max_mc_usd: float = 500000.0,
        max_top10_percent: float = 50.0,
        young_min_holders: int = 30,
        min_holders: int = 50,
        young_age_minutes: float = 60,
        min_lp_locked_percent: float = 80.0,
        fallback_max_top10_percent: float = 25.0,
        fallback_min_holders: int = 100,
        fake_pump: FakePumpDetector | None = None,
        now_fn: Callable[[], float] | None = None,
    ) -> None:
        """Initialize hard filter."""
        self.blacklist = tuple(word.lower() for word in blacklist)
        self.min_age_minutes = min_age_minutes
        self.max_age_minutes = max_age_minutes
        self.min_liquidity_usd = min_liquidity_usd
        self.max_liq_mc_ratio = max_liq_mc_ratio
        self.min_liq_mc_ratio = min_liq_mc_ratio
        self.safe_zone_ratio = safe_zone_ratio
        self.safe_zone_min_liquidity_usd = safe_zone_min_liquidity_usd
        self.min_mc_usd = min_mc_usd
        self.max_mc_usd = max_mc_usd
        self.max_top10_percent = max_top10_percent
        self.young_min_holders = young_min_holders
        self.min_holders = min_holders
        self.young_age_minutes = young_age_minutes
        self.min_lp_locked_percent = min_lp_locked_percent
        self.fallback_max_top10_percent = fallback_max_top10_percent
        self.fallback_min_holders = fallback_min_holders
        self.fake_pump = fake_pump or FakePumpDetector()
        self._now_fn = now_fn or time.time

    def evaluate(self, snap: TokenSnapshot) -> FilterDecision:
        """Evaluate token snapshot against the hard gates."""
        return self._decide(snap, self._market_failure(snap) or self._holder_failure(snap))

    def evaluate_market(self, snap: TokenSnapshot) -> FilterDecision:
        """Run the gates that only need discovery data (name, age, liquidity, cap).

        These come first in the gate order, so a token failing here reports
        the same reason as the full evaluation.
        """
        return self._decide(snap, self._market_failure(snap))

    def evaluate_holders(self, snap: TokenSnapshot) -> FilterDecision:
        """Run the remaining gates on a snapshot enriched with holder details."""
        return self._decide(snap, self._holder_failure(snap))

    def _decide(self, snap: TokenSnapshot, kind: RejectionKind | None) -> FilterDecision:
        if kind is None:
            return FilterDecision(passed=True)

        logger.debug("Hard filter rejected token", token_mint=snap.mint, reason=kind.code)
        return FilterDecision(passed=False, reason=kind.code)

    def _market_failure(self, snap: TokenSnapshot) -> RejectionKind | None:
        # Blacklisted words
        text = f"{snap.name} {snap.symbol}".lower()
        if any(word in text for word in self.blacklist):
            return RejectionKind.BLACKLISTED_NAME

        # Age window; an unknown launch time counts as old
        if snap.created_at is None:
            return RejectionKind.TOO_OLD
        age = snap.age_minutes(self._now_fn())
        if age < self.min_age_minutes:
            return RejectionKind.TOO_YOUNG
        if age > self.max_age_minutes:
            return RejectionKind.TOO_OLD

        # Liquidity floor
        liq = snap.liquidity_usd
        if liq < self.min_liquidity_usd:
            return RejectionKind.LIQUIDITY_TOO_LOW

        # Liquidity / market cap structure
        ratio = snap.liq_mc_ratio
        if ratio > self.max_liq_mc_ratio:
            return RejectionKind.LIQ_MC_RATIO_TOO_HIGH
        if ratio < self.min_liq_mc_ratio:
            return RejectionKind.LIQ_MC_RATIO_TOO_LOW
        if ratio < self.safe_zone_ratio and liq < self.safe_zone_min_liquidity_usd:
            return RejectionKind.LOW_LIQ_IN_SAFE_ZONE

        # Market cap bounds
        mc = snap.market_cap_usd
        if mc > self.max_mc_usd:
            return RejectionKind.MC_TOO_HIGH
        if mc < self.min_mc_usd:
            return RejectionKind.MC_TOO_LOW

        if self.fake_pump.is_fake_pump(snap):
            return RejectionKind.FAKE_PUMP

        return None

    def _holder_failure(self, snap: TokenSnapshot) -> RejectionKind | None:
        if snap.is_mintable or snap.is_freezable:
            return RejectionKind.MINTABLE_OR_PAUSABLE

        if snap.top10_holders_percent > self.max_top10_percent:
            return RejectionKind.WHALE_TRAP

        age = snap.age_minutes(self._now_fn())
        floor = self.young_min_holders if age < self.young_age_minutes else self.min_holders
        if snap.holder_count < floor:
            return RejectionKind.NOT_ENOUGH_HOLDERS

        # LP lock/burn, or a well distributed holder base as fallback
        lp_safe = snap.lp_locked_percent >= self.min_lp_locked_percent or snap.lp_burned
        distributed = (
            snap.top10_holders_percent < self.fallback_max_top10_percent
            and snap.holder_count > self.fallback_min_holders
        )
        if not lp_safe and not distributed:
            return RejectionKind.RUG_RISK_LOW_LOCK

        return None
