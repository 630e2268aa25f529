"""Tests for the security and holder gates."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from signalbot.core.types import PairDetails, SecurityVerdict
from signalbot.filters.security import HolderGate, SecurityGate


class TestSecurityGate:
    """Fail-closed external security check."""

    @pytest.mark.asyncio
    async def test_safe_token_passes(self, make_snapshot):
        scanner = AsyncMock()
        scanner.check_security.return_value = SecurityVerdict(safe=True)

        decision = await SecurityGate(scanner).evaluate(make_snapshot())

        assert decision.passed is True
        scanner.check_security.assert_awaited_once_with(make_snapshot().mint)

    @pytest.mark.asyncio
    async def test_unsafe_token_rejected(self, make_snapshot):
        scanner = AsyncMock()
        scanner.check_security.return_value = SecurityVerdict(
            safe=False, reason="FREEZABLE"
        )

        decision = await SecurityGate(scanner).evaluate(make_snapshot())

        assert decision.passed is False
        assert decision.reason == "SECURITY_UNSAFE"

    @pytest.mark.asyncio
    async def test_scanner_error_fails_closed(self, make_snapshot):
        scanner = AsyncMock()
        scanner.check_security.side_effect = ConnectionError("unreachable")

        decision = await SecurityGate(scanner).evaluate(make_snapshot())

        assert decision.passed is False
        assert decision.reason == "SECURITY_CHECK_FAILED"

    @pytest.mark.asyncio
    async def test_scanner_timeout_fails_closed(self, make_snapshot):
        async def slow_check(mint):
            await asyncio.sleep(1)
            return SecurityVerdict(safe=True)

        scanner = AsyncMock()
        scanner.check_security.side_effect = slow_check

        decision = await SecurityGate(scanner, timeout_seconds=0.01).evaluate(
            make_snapshot()
        )

        assert decision.reason == "SECURITY_CHECK_FAILED"


class TestHolderGate:
    """Holder floor and whale gate on fresh details."""

    @pytest.fixture
    def gate(self, now):
        return HolderGate(now_fn=lambda: now)

    def test_floor_grows_with_age(self, gate):
        assert gate.min_holders(5) == 15
        assert gate.min_holders(14.9) == 15
        assert gate.min_holders(15) == 25
        assert gate.min_holders(59) == 25
        assert gate.min_holders(60) == 50

    def test_missing_details(self, gate, make_snapshot):
        decision = gate.evaluate(make_snapshot(), None)
        assert decision.reason == "HOLDER_DATA_UNAVAILABLE"

    def test_whale_trap(self, gate, make_snapshot):
        details = PairDetails(holder_count=500, top10_percent=51.0)
        assert gate.evaluate(make_snapshot(), details).reason == "WHALE_TRAP"

    def test_young_token_looser_floor(self, gate, make_snapshot):
        # 20 holders is below the hard filter floor but enough at 10 minutes
        details = PairDetails(holder_count=20, top10_percent=30.0)
        assert gate.evaluate(make_snapshot(age_minutes=10), details).passed is True
        assert (
            gate.evaluate(make_snapshot(age_minutes=30), details).reason
            == "NOT_ENOUGH_HOLDERS"
        )

    def test_mature_token_floor(self, gate, make_snapshot):
        snap = make_snapshot(age_minutes=120)
        assert gate.evaluate(snap, PairDetails(holder_count=49)).reason == "NOT_ENOUGH_HOLDERS"
        assert gate.evaluate(snap, PairDetails(holder_count=50)).passed is True
