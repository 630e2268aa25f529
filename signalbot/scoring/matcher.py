"""Watchlist matching for curated meme phrases."""

import structlog

from ..core.types import MemeMatchResult, MemeWatchItem, TokenSnapshot

logger = structlog.get_logger(__name__)


class WatchlistMatcher:
    """Match tokens against the curated watchlist. First match wins."""

    def __init__(self, items: list[MemeWatchItem] | None = None) -> None:
        self.items: list[MemeWatchItem] = list(items or [])

    def replace(self, items: list[MemeWatchItem]) -> None:
        """Swap in a freshly loaded watchlist."""
        self.items = list(items)
        logger.debug("Watchlist replaced", count=len(self.items))

    def match(self, snap: TokenSnapshot) -> MemeMatchResult:
        name = snap.name.lower()
        symbol = snap.symbol.lower().replace("$", "")

        for item in self.items:
            if self._is_match(snap.mint, name, symbol, item):
                return MemeMatchResult(meme_match=True, matched_meme=item)

        return MemeMatchResult(meme_match=False)

    @staticmethod
    def _is_match(mint: str, name: str, symbol: str, item: MemeWatchItem) -> bool:
        # Contract address match is exact (case sensitive)
        if mint == item.phrase:
            return True

        phrase = item.phrase.lower()
        if phrase and (phrase in name or phrase in symbol):
            return True

        for tag in item.tags:
            tag = tag.lower()
            if tag and (tag in name or tag in symbol):
                return True

        return False
