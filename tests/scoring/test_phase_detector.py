"""Tests for phase classification."""

import pytest

from signalbot.core.types import Phase, ScoreResult
from signalbot.scoring.phase import PhaseDetector


@pytest.fixture
def detector(now):
    return PhaseDetector(now_fn=lambda: now)


def test_served(detector, make_snapshot):
    snap = make_snapshot(market_cap_usd=1_300_000.0)
    assert detector.detect(snap, ScoreResult()) is Phase.SERVED


def test_cooking_at_max_cap(detector, make_snapshot):
    assert detector.detect(make_snapshot(market_cap_usd=400000.0), ScoreResult()) is Phase.COOKING


def test_cooking_near_max_cap_needs_score(detector, make_snapshot):
    snap = make_snapshot(market_cap_usd=330000.0)

    assert detector.detect(snap, ScoreResult(total_score=8)) is Phase.COOKING
    assert detector.detect(snap, ScoreResult(total_score=7)) is Phase.TRACKING


def test_tracking_by_age_or_volume(detector, make_snapshot):
    young = make_snapshot(market_cap_usd=60000.0, age_minutes=5, volume_5m_usd=1000.0)
    busy = make_snapshot(market_cap_usd=60000.0, age_minutes=5, volume_5m_usd=6000.0)

    assert detector.detect(young, ScoreResult()) is Phase.SPOTTED
    assert detector.detect(busy, ScoreResult()) is Phase.TRACKING


def test_spotted_below_min_cap(detector, make_snapshot):
    assert detector.detect(make_snapshot(market_cap_usd=40000.0), ScoreResult()) is Phase.SPOTTED


def test_phase_can_regress(detector, make_snapshot):
    """Phase is recomputed from current metrics, never carried over."""
    score = ScoreResult(total_score=10)

    first = detector.detect(make_snapshot(market_cap_usd=450000.0), score)
    later = detector.detect(make_snapshot(market_cap_usd=30000.0), score)

    assert first is Phase.COOKING
    assert later is Phase.SPOTTED
