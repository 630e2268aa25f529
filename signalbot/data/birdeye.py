"""Birdeye holder and security details for Solana tokens."""

from typing import Any

import httpx
import structlog

from ..core.interfaces import PairDetailsSource
from ..core.types import PairDetails
from .http import ProviderClient

logger = structlog.get_logger(__name__)


def map_birdeye_details(
    overview: dict[str, Any], security: dict[str, Any]
) -> PairDetails:
    """Map Birdeye overview and security payloads to PairDetails.

    Args:
        overview: ``data`` object of /defi/token_overview
        security: ``data`` object of /defi/token_security

    Returns:
        PairDetails with percentages in the 0-100 range
    """
    top10 = security.get("top10HolderPercent")
    lock_info = security.get("lockInfo") or {}

    return PairDetails(
        holder_count=int(overview.get("holder") or 0),
        # Birdeye reports holder share as a 0-1 fraction
        top10_percent=float(top10) * 100 if top10 is not None else 0.0,
        is_mintable=security.get("mintAuthority") is not None,
        is_freezable=security.get("freezeAuthority") is not None,
        liquidity_locked_percent=float(lock_info.get("lockedPercent") or 0),
        liquidity_burned_percent=float(lock_info.get("burnedPercent") or 0),
    )


class BirdeyeDetailsSource(ProviderClient, PairDetailsSource):
    """Birdeye API source for holder counts and authority flags."""

    name = "birdeye"

    def __init__(
        self,
        base_url: str = "https://public-api.birdeye.so",
        api_key: str | None = None,
        session: httpx.AsyncClient | None = None,
        timeout: float = 15.0,
    ) -> None:
        """Initialize Birdeye details source.

        Args:
            base_url: Birdeye API base URL
            api_key: API key sent as X-API-KEY
            session: Optional httpx client session
            timeout: Per-request timeout in seconds
        """
        super().__init__(base_url, session, requests_per_minute=60, timeout=timeout)
        self.api_key = api_key

    def _headers(self) -> dict[str, str]:
        headers = {"x-chain": "solana", "accept": "application/json"}
        if self.api_key:
            headers["X-API-KEY"] = self.api_key
        return headers

    async def fetch_details(self, mint: str) -> PairDetails | None:
        """Fetch holder and security details.

        Args:
            mint: Token mint address

        Returns:
            PairDetails or None if unavailable
        """
        try:
            overview = await self._make_request(
                "defi/token_overview", params={"address": mint}
            )
            security = await self._make_request(
                "defi/token_security", params={"address": mint}
            )
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                logger.info("Token not found", token_mint=mint)
                return None
            logger.error("HTTP error in details lookup", token_mint=mint, error=str(e))
            return None
        except Exception as e:
            logger.error("Failed to fetch token details", token_mint=mint, error=str(e))
            return None

        if not overview.get("success", True) or not security.get("success", True):
            logger.warning("Birdeye reported failure", token_mint=mint)
            return None

        details = map_birdeye_details(
            overview.get("data") or {}, security.get("data") or {}
        )
        logger.debug(
            "Fetched token details",
            token_mint=mint,
            holders=details.holder_count,
            top10_percent=details.top10_percent,
        )
        return details
