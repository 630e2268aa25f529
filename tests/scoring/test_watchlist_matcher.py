"""Tests for watchlist matching."""

from signalbot.core.types import MemeWatchItem
from signalbot.scoring.matcher import WatchlistMatcher


def _item(phrase, tags=None, item_id="1"):
    return MemeWatchItem(id=item_id, phrase=phrase, tags=tags or [])


def test_empty_watchlist(make_snapshot):
    assert WatchlistMatcher().match(make_snapshot()).meme_match is False


def test_phrase_in_name(make_snapshot):
    result = WatchlistMatcher([_item("penguin")]).match(make_snapshot())

    assert result.meme_match is True
    assert result.matched_meme.phrase == "penguin"


def test_phrase_case_insensitive_in_symbol(make_snapshot):
    snap = make_snapshot(name="Something", symbol="$PENGU")
    assert WatchlistMatcher([_item("Pengu")]).match(snap).meme_match is True


def test_tag_match(make_snapshot):
    snap = make_snapshot(name="Waddle Coin", symbol="WDL")
    matcher = WatchlistMatcher([_item("sad bird", tags=["waddle"])])

    assert matcher.match(snap).meme_match is True


def test_exact_mint_match(make_snapshot):
    snap = make_snapshot(name="Nothing", symbol="NONE")
    matcher = WatchlistMatcher([_item(snap.mint)])

    assert matcher.match(snap).meme_match is True
    assert WatchlistMatcher([_item(snap.mint.lower())]).match(snap).meme_match is False


def test_first_match_wins(make_snapshot):
    matcher = WatchlistMatcher(
        [_item("frog", item_id="a"), _item("sad", item_id="b"), _item("penguin", item_id="c")]
    )

    assert matcher.match(make_snapshot()).matched_meme.id == "b"


def test_replace(make_snapshot):
    matcher = WatchlistMatcher([_item("penguin")])
    matcher.replace([])

    assert matcher.match(make_snapshot()).meme_match is False
