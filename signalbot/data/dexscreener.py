"""DexScreener discovery feed for fresh Solana tokens."""

from datetime import UTC, datetime
from typing import Any

import httpx
import structlog

from ..core.interfaces import DiscoveryFeed
from ..core.types import TokenLinks, TokenSnapshot, TxCounts
from .http import ProviderClient

logger = structlog.get_logger(__name__)

# DexScreener accepts up to 30 addresses per tokens request
TOKENS_PER_REQUEST = 30


def map_dexscreener_pair_to_snapshot(
    pair: dict[str, Any], source: str = "dexscreener"
) -> TokenSnapshot | None:
    """Map a DexScreener pair object to a TokenSnapshot.

    Args:
        pair: Raw pair object
        source: Data source identifier

    Returns:
        TokenSnapshot, or None for non-Solana pairs
    """
    if pair.get("chainId") != "solana":
        return None

    base = pair.get("baseToken") or {}
    address = base.get("address", "")
    if not address or address.startswith("0x"):
        return None

    volume = pair.get("volume") or {}
    vol_5m = float(volume.get("m5") or 0)
    vol_1h = float(volume.get("h1") or 0)
    txns_5m = (pair.get("txns") or {}).get("m5") or {}
    info = pair.get("info") or {}

    twitter = None
    for social in info.get("socials") or []:
        if social.get("type") == "twitter":
            twitter = social.get("url")
            break

    created_ms = pair.get("pairCreatedAt")
    created_at = None
    if created_ms:
        try:
            created_at = datetime.fromtimestamp(int(created_ms) / 1000, tz=UTC)
        except (ValueError, TypeError):
            created_at = None

    url = pair.get("url")
    return TokenSnapshot(
        mint=address,
        name=base.get("name") or "Unknown",
        symbol=base.get("symbol") or "Unknown",
        pair_address=pair.get("pairAddress"),
        price_usd=float(pair.get("priceUsd") or 0),
        market_cap_usd=float(pair.get("marketCap") or pair.get("fdv") or 0),
        liquidity_usd=float((pair.get("liquidity") or {}).get("usd") or 0),
        volume_5m_usd=vol_5m,
        # Approximate 30m volume from the 5m and 1h windows
        volume_30m_usd=vol_5m + vol_1h / 2,
        txs_5m=TxCounts(
            buys=int(txns_5m.get("buys") or 0), sells=int(txns_5m.get("sells") or 0)
        ),
        price_change_5m=float((pair.get("priceChange") or {}).get("m5") or 0),
        created_at=created_at,
        updated_at=datetime.now(UTC),
        links=TokenLinks(
            dexscreener=url,
            pumpfun=url if url and "pump" in url else f"https://pump.fun/{address}",
            birdeye=f"https://birdeye.so/token/{address}?chain=solana",
            twitter=twitter,
        ),
        source=source,
    )


class DexScreenerFeed(ProviderClient, DiscoveryFeed):
    """Latest Solana token profiles resolved to their most liquid pair."""

    name = "dexscreener"

    def __init__(
        self,
        base_url: str = "https://api.dexscreener.com",
        session: httpx.AsyncClient | None = None,
        max_tokens: int = 100,
        timeout: float = 15.0,
    ) -> None:
        """Initialize DexScreener feed.

        Args:
            base_url: DexScreener API base URL
            session: Optional httpx client session
            max_tokens: Maximum candidates returned per fetch
            timeout: Per-request timeout in seconds
        """
        # 60 requests per minute on the pairs endpoints
        super().__init__(base_url, session, requests_per_minute=60, timeout=timeout)
        self.max_tokens = max_tokens

    async def fetch_candidates(self) -> list[TokenSnapshot]:
        """Fetch the latest Solana profiles and their pair data.

        Returns:
            Token snapshots, empty on failure
        """
        try:
            profiles = await self._make_request("token-profiles/latest/v1")
        except Exception as e:
            logger.error("Failed to fetch DexScreener profiles", error=str(e))
            return []

        mints: list[str] = []
        for profile in profiles or []:
            mint = profile.get("tokenAddress")
            if profile.get("chainId") == "solana" and mint and mint not in mints:
                mints.append(mint)
        mints = mints[: self.max_tokens]

        snapshots = await self.get_tokens(mints)
        logger.info(
            "Polled DexScreener profiles", profiles=len(mints), snapshots=len(snapshots)
        )
        return snapshots

    async def get_tokens(self, mints: list[str]) -> list[TokenSnapshot]:
        """Resolve mints to snapshots using each token's most liquid pair."""
        snapshots: list[TokenSnapshot] = []

        for i in range(0, len(mints), TOKENS_PER_REQUEST):
            chunk = mints[i : i + TOKENS_PER_REQUEST]
            try:
                data = await self._make_request(f"latest/dex/tokens/{','.join(chunk)}")
            except Exception as e:
                logger.warning("Failed to fetch DexScreener pairs", count=len(chunk), error=str(e))
                continue

            best: dict[str, dict[str, Any]] = {}
            for pair in (data or {}).get("pairs") or []:
                address = (pair.get("baseToken") or {}).get("address")
                if address not in chunk:
                    continue
                liq = float((pair.get("liquidity") or {}).get("usd") or 0)
                current = best.get(address)
                if current is None or liq > float(
                    (current.get("liquidity") or {}).get("usd") or 0
                ):
                    best[address] = pair

            for pair in best.values():
                try:
                    snapshot = map_dexscreener_pair_to_snapshot(pair)
                except Exception as e:
                    logger.warning(
                        "Failed to map pair data",
                        pair_address=pair.get("pairAddress"),
                        error=str(e),
                    )
                    continue
                if snapshot is not None:
                    snapshots.append(snapshot)

        return snapshots
