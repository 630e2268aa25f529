"""Lifecycle phase classification."""

import time
from collections.abc import Callable

from ..core.types import Phase, ScoreResult, TokenSnapshot


class PhaseDetector:
    """Classify a token into a lifecycle phase from its current metrics.

    This is a pure function of the snapshot and score, not a state machine:
    a later evaluation may return an earlier phase (e.g. COOKING, then
    SPOTTED after a market cap drop). Phases are never persisted as state.
    """

    def __init__(
        self,
        min_mc_usd: float = 50000.0,
        max_mc_usd: float = 400000.0,
        now_fn: Callable[[], float] | None = None,
    ) -> None:
        self.min_mc_usd = min_mc_usd
        self.max_mc_usd = max_mc_usd
        self._now_fn = now_fn or time.time

    def detect(self, snap: TokenSnapshot, score: ScoreResult) -> Phase:
        mc = snap.market_cap_usd

        if mc > self.max_mc_usd * 3:
            return Phase.SERVED

        if mc >= self.max_mc_usd or (
            mc > self.max_mc_usd * 0.8 and score.total_score >= 8
        ):
            return Phase.COOKING

        age = snap.age_minutes(self._now_fn())
        if mc >= self.min_mc_usd and (age > 10 or snap.volume_5m_usd > 5000):
            return Phase.TRACKING

        return Phase.SPOTTED
