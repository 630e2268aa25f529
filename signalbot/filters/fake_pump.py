"""Fake pump and price manipulation heuristics."""

import structlog

from ..core.types import FilterDecision, RejectionKind, TokenSnapshot

logger = structlog.get_logger(__name__)


class FakePumpDetector:
    """Detect price moves that are not backed by organic buying."""

    def __init__(
        self,
        fake_pump_change_pct: float = 40.0,
        fake_pump_min_buys: int = 10,
        manipulation_change_pct: float = 30.0,
        manipulation_sell_ratio: float = 2.0,
    ) -> None:
        """Initialize fake pump detector."""
        self.fake_pump_change_pct = fake_pump_change_pct
        self.fake_pump_min_buys = fake_pump_min_buys
        self.manipulation_change_pct = manipulation_change_pct
        self.manipulation_sell_ratio = manipulation_sell_ratio

    def is_fake_pump(self, snap: TokenSnapshot) -> bool:
        """Large 5m candle with only a handful of buys."""
        return (
            snap.price_change_5m > self.fake_pump_change_pct
            and snap.txs_5m.buys < self.fake_pump_min_buys
        )

    def is_manipulated(self, snap: TokenSnapshot) -> bool:
        """Price rising while sells heavily outnumber buys."""
        return (
            snap.price_change_5m > self.manipulation_change_pct
            and snap.txs_5m.sells > snap.txs_5m.buys * self.manipulation_sell_ratio
        )

    def evaluate(self, snap: TokenSnapshot) -> FilterDecision:
        """Evaluate both heuristics, fake pump first."""
        if self.is_fake_pump(snap):
            reason = RejectionKind.FAKE_PUMP.code
        elif self.is_manipulated(snap):
            reason = RejectionKind.MANIPULATION.code
        else:
            return FilterDecision(passed=True)

        logger.debug(
            "Fake pump detected",
            token_mint=snap.mint,
            reason=reason,
            price_change_5m=snap.price_change_5m,
            buys_5m=snap.txs_5m.buys,
            sells_5m=snap.txs_5m.sells,
        )
        return FilterDecision(passed=False, reason=reason)
