"""Security and holder gates backed by external data."""

import asyncio
import time
from collections.abc import Callable

import structlog

from ..core.interfaces import SecurityScanner
from ..core.types import (
    FilterDecision,
    PairDetails,
    RejectionKind,
    SecurityVerdict,
    TokenSnapshot,
)

logger = structlog.get_logger(__name__)


class SecurityGate:
    """Fail-closed wrapper around an external security scanner.

    Any error or timeout from the scanner is reported as a rejection: a token
    whose safety cannot be verified is treated as unsafe.
    """

    def __init__(self, scanner: SecurityScanner, timeout_seconds: float = 15.0) -> None:
        self.scanner = scanner
        self.timeout_seconds = timeout_seconds

    async def evaluate(self, snap: TokenSnapshot) -> FilterDecision:
        try:
            verdict: SecurityVerdict = await asyncio.wait_for(
                self.scanner.check_security(snap.mint), timeout=self.timeout_seconds
            )
        except Exception as e:
            logger.warning(
                "Security check failed, rejecting token",
                token_mint=snap.mint,
                error=str(e) or type(e).__name__,
            )
            return FilterDecision(
                passed=False, reason=RejectionKind.SECURITY_CHECK_FAILED.code
            )

        if not verdict.safe:
            logger.info(
                "Token flagged unsafe",
                token_mint=snap.mint,
                detail=verdict.reason,
            )
            return FilterDecision(passed=False, reason=RejectionKind.SECURITY_UNSAFE.code)

        return FilterDecision(passed=True)


class HolderGate:
    """Holder count and whale concentration gate on freshly fetched details.

    The minimum holder floor grows with age and is looser than the hard
    filter's floor for very young tokens.
    """

    def __init__(
        self,
        max_top10_percent: float = 50.0,
        holder_floors: tuple[tuple[float, int], ...] = ((15, 15), (60, 25)),
        mature_min_holders: int = 50,
        now_fn: Callable[[], float] | None = None,
    ) -> None:
        self.max_top10_percent = max_top10_percent
        self.holder_floors = holder_floors
        self.mature_min_holders = mature_min_holders
        self._now_fn = now_fn or time.time

    def min_holders(self, age_minutes: float) -> int:
        for max_age, floor in self.holder_floors:
            if age_minutes < max_age:
                return floor
        return self.mature_min_holders

    def evaluate(self, snap: TokenSnapshot, details: PairDetails | None) -> FilterDecision:
        if details is None:
            return FilterDecision(
                passed=False, reason=RejectionKind.HOLDER_DATA_UNAVAILABLE.code
            )

        if details.top10_percent > self.max_top10_percent:
            return FilterDecision(passed=False, reason=RejectionKind.WHALE_TRAP.code)

        floor = self.min_holders(snap.age_minutes(self._now_fn()))
        if details.holder_count < floor:
            logger.debug(
                "Not enough holders",
                token_mint=snap.mint,
                holders=details.holder_count,
                floor=floor,
            )
            return FilterDecision(
                passed=False, reason=RejectionKind.NOT_ENOUGH_HOLDERS.code
            )

        return FilterDecision(passed=True)
