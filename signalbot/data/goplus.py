"""GoPlus token security scanner."""

from typing import Any

import httpx
import structlog

from ..core.interfaces import SecurityScanner
from ..core.types import SecurityVerdict
from .http import ProviderClient

logger = structlog.get_logger(__name__)

# Solana flags reported as {"status": "1"} when the authority is live
DANGER_FLAGS = (
    "mintable",
    "freezable",
    "closable",
    "balance_mutable_authority",
    "transfer_fee_upgradable",
)


def _flag_set(value: Any) -> bool:
    if isinstance(value, dict):
        return str(value.get("status", "0")) == "1"
    return str(value) == "1"


def evaluate_goplus_report(report: dict[str, Any]) -> SecurityVerdict:
    """Turn a GoPlus Solana token report into a verdict."""
    for flag in DANGER_FLAGS:
        if _flag_set(report.get(flag)):
            return SecurityVerdict(safe=False, reason=flag.upper())

    if _flag_set(report.get("non_transferable")):
        return SecurityVerdict(safe=False, reason="NON_TRANSFERABLE")

    if report.get("transfer_hook"):
        return SecurityVerdict(safe=False, reason="TRANSFER_HOOK")

    return SecurityVerdict(safe=True)


class GoPlusScanner(ProviderClient, SecurityScanner):
    """GoPlus Security API client (free tier, no key)."""

    name = "goplus"

    def __init__(
        self,
        base_url: str = "https://api.gopluslabs.io/api/v1",
        session: httpx.AsyncClient | None = None,
        timeout: float = 15.0,
    ) -> None:
        """Initialize GoPlus scanner.

        Args:
            base_url: GoPlus API base URL
            session: Optional httpx client session
            timeout: Per-request timeout in seconds
        """
        super().__init__(base_url, session, requests_per_minute=30, timeout=timeout)

    async def check_security(self, mint: str) -> SecurityVerdict:
        """Check a token.

        Errors propagate: the caller treats them as unsafe.

        Args:
            mint: Token mint address

        Returns:
            SecurityVerdict

        Raises:
            LookupError: If GoPlus has no report for the token
        """
        data = await self._make_request(
            "solana/token_security", params={"contract_addresses": mint}
        )
        report = (data.get("result") or {}).get(mint)
        if not report:
            raise LookupError(f"No GoPlus report for {mint}")

        verdict = evaluate_goplus_report(report)
        logger.debug(
            "GoPlus verdict", token_mint=mint, safe=verdict.safe, reason=verdict.reason
        )
        return verdict
