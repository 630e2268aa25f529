"""Mechanical token scoring."""

import structlog

from ..core.types import MemeMatchResult, ScoreBreakdown, ScoreResult, TokenSnapshot

logger = structlog.get_logger(__name__)

FAKE_PUMP_SCORE_CAP = 4

# (lower bound inclusive, upper bound exclusive, points) in hours
AGE_CURVE: tuple[tuple[float, float, int], ...] = (
    (24, 48, -5),
    (48, 96, -10),
    (96, 168, -15),
    (168, float("inf"), -30),
)
FRESH_AGE_HOURS = 4
FRESH_AGE_BONUS = 10


class ScoringEngine:
    """Additive point scoring with a full breakdown for audit."""

    def __init__(
        self,
        min_mc_usd: float = 50000.0,
        max_mc_usd: float = 400000.0,
        min_liquidity_usd: float = 5000.0,
        min_volume_5m_usd: float = 1000.0,
        meme_match_points: int = 10,
    ) -> None:
        """Initialize scoring engine."""
        self.min_mc_usd = min_mc_usd
        self.max_mc_usd = max_mc_usd
        self.min_liquidity_usd = min_liquidity_usd
        self.min_volume_5m_usd = min_volume_5m_usd
        self.meme_match_points = meme_match_points

    def score(
        self, snap: TokenSnapshot, match: MemeMatchResult | None = None
    ) -> ScoreResult:
        """Score a snapshot. The returned phase is a placeholder."""
        matched = bool(match and match.meme_match)
        breakdown: list[ScoreBreakdown] = []

        def add(factor: str, points: int, details: str) -> None:
            breakdown.append(ScoreBreakdown(factor=factor, points=points, details=details))

        if matched:
            phrase = match.matched_meme.phrase if match.matched_meme else ""
            add("Meme Match", self.meme_match_points, f"Watchlist match ({phrase})")

        mc = snap.market_cap_usd
        if self.min_mc_usd <= mc <= self.max_mc_usd:
            add("Market Cap", 2, f"Sweet spot (${mc:,.0f})")
        elif mc < self.min_mc_usd / 2:
            add("Market Cap", 0, f"Micro cap (${mc:,.0f})")
        elif mc > self.max_mc_usd * 2:
            if matched:
                add("Market Cap", 0, "High cap, penalty waived for watchlist match")
            else:
                add("Market Cap", -2, f"High cap (${mc:,.0f})")

        liq = snap.liquidity_usd
        if liq >= self.min_liquidity_usd:
            add("Liquidity", 2, f"${liq:,.0f}")
        else:
            add("Liquidity", -2, f"Thin liquidity (${liq:,.0f})")

        vol5 = snap.volume_5m_usd
        vol30 = snap.volume_30m_usd
        if vol5 >= self.min_volume_5m_usd:
            add("Volume", 2, f"5m volume ${vol5:,.0f}")

        if vol30 > 0 and vol5 > (vol30 / 6) * 2 and vol5 > vol30 / 2:
            add("Momentum", 1, "5m volume accelerating vs 30m")

        txs = snap.txs_5m
        if txs.total > 10 and txs.buy_ratio > 0.6:
            add("Buy Pressure", 1, f"{txs.buy_ratio:.0%} buys")

        if vol5 > liq * 3:
            add("Volatility", 0, "5m volume above 3x liquidity")

        raw_score = sum(item.points for item in breakdown)
        result = ScoreResult(total_score=raw_score, breakdown=breakdown)

        if snap.price_change_5m > 30:
            if txs.buy_ratio > 0.5:
                result.breakdown.append(
                    ScoreBreakdown(
                        factor="Organic Pump",
                        points=1,
                        details=f"+{snap.price_change_5m:.0f}% with {txs.buy_ratio:.0%} buys",
                    )
                )
                result.total_score += 1
            else:
                capped = min(result.total_score, FAKE_PUMP_SCORE_CAP)
                result.adjustments.append(
                    ScoreBreakdown(
                        factor="Fake Pump Cap",
                        points=capped - result.total_score,
                        details=f"Score capped at {FAKE_PUMP_SCORE_CAP}",
                    )
                )
                result.total_score = capped

        logger.debug(
            "Token scored",
            token_mint=snap.mint,
            total_score=result.total_score,
            factors=[item.factor for item in result.breakdown],
        )
        return result


def age_adjustment(age_minutes: float) -> int:
    """Time bonus for fresh tokens, decay penalty for old ones."""
    hours = age_minutes / 60.0
    if hours <= FRESH_AGE_HOURS:
        return FRESH_AGE_BONUS
    for low, high, points in AGE_CURVE:
        if low <= hours < high:
            return points
    return 0


def apply_age_adjustment(result: ScoreResult, age_minutes: float) -> ScoreResult:
    """Return a copy of ``result`` with the age curve applied and floored at 0."""
    adjusted = result.model_copy(deep=True)
    points = age_adjustment(age_minutes)
    if points:
        adjusted.adjustments.append(
            ScoreBreakdown(factor="Age", points=points, details=f"{age_minutes / 60:.1f}h old")
        )
        adjusted.total_score += points

    if adjusted.total_score < 0:
        adjusted.adjustments.append(
            ScoreBreakdown(factor="Floor", points=-adjusted.total_score, details="Clamped to 0")
        )
        adjusted.total_score = 0

    logger.debug(
        "Age adjustment applied",
        age_minutes=round(age_minutes, 1),
        points=points,
        total_score=adjusted.total_score,
    )
    return adjusted
