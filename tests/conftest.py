"""Shared fixtures for scanner tests."""

from datetime import UTC, datetime

import pytest

from signalbot.core.types import TokenSnapshot, TxCounts

NOW = 1_700_000_000.0


@pytest.fixture
def now() -> float:
    """Fixed wall clock used across time-dependent tests."""
    return NOW


@pytest.fixture
def make_snapshot():
    """Factory for a snapshot that passes every hard filter at NOW.

    30 minutes old, $50k market cap, $10k liquidity (20% ratio), 40 holders,
    LP burned, organic 5m flow.
    """

    def _make(age_minutes: float = 30.0, **overrides) -> TokenSnapshot:
        fields = {
            "mint": "So1anaMint111111111111111111111111111111111",
            "name": "Sad Penguin",
            "symbol": "PENGU",
            "price_usd": 0.00005,
            "market_cap_usd": 50000.0,
            "liquidity_usd": 10000.0,
            "volume_5m_usd": 2000.0,
            "volume_30m_usd": 6000.0,
            "txs_5m": TxCounts(buys=20, sells=5),
            "price_change_5m": 5.0,
            "holder_count": 40,
            "top10_holders_percent": 20.0,
            "lp_burned": True,
            "created_at": datetime.fromtimestamp(NOW - age_minutes * 60, tz=UTC),
            "source": "test",
        }
        fields.update(overrides)
        return TokenSnapshot(**fields)

    return _make
