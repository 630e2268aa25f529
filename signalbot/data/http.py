"""Shared HTTP plumbing for provider adapters."""

import asyncio
import time
from typing import Any

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = structlog.get_logger(__name__)


class TokenBucket:
    """Simple in-memory token bucket rate limiter."""

    def __init__(self, capacity: int, refill_rate: float) -> None:
        """Initialize token bucket.

        Args:
            capacity: Maximum tokens in bucket
            refill_rate: Tokens per second refill rate
        """
        self.capacity = capacity
        self.refill_rate = refill_rate
        self.tokens = capacity
        self.last_refill = time.time()

    async def acquire(self) -> bool:
        """Try to acquire a token, return True if successful."""
        now = time.time()
        time_passed = now - self.last_refill
        self.tokens = min(self.capacity, self.tokens + time_passed * self.refill_rate)
        self.last_refill = now

        if self.tokens >= 1:
            self.tokens -= 1
            return True
        return False


class ProviderClient:
    """Rate-limited JSON client with retries on network errors and timeouts."""

    name = "provider"

    def __init__(
        self,
        base_url: str,
        session: httpx.AsyncClient | None = None,
        requests_per_minute: int = 60,
        timeout: float = 15.0,
    ) -> None:
        """Initialize provider client.

        Args:
            base_url: API base URL
            session: Optional httpx client session
            requests_per_minute: Client-side rate limit
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.session = session or httpx.AsyncClient()
        self.timeout = timeout
        self.rate_limiter = TokenBucket(
            capacity=requests_per_minute, refill_rate=requests_per_minute / 60
        )
        self.retry_config = AsyncRetrying(
            stop=stop_after_attempt(3),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type((httpx.NetworkError, httpx.TimeoutException)),
            reraise=True,
        )

    def _headers(self) -> dict[str, str]:
        return {}

    async def _make_request(
        self, endpoint: str, params: dict[str, Any] | None = None
    ) -> Any:
        """Make HTTP request with rate limiting and retries.

        Args:
            endpoint: API endpoint path
            params: Query parameters

        Returns:
            Decoded JSON body

        Raises:
            httpx.HTTPStatusError: On non-2xx responses
            httpx.NetworkError, httpx.TimeoutException: When all retries fail
        """
        while not await self.rate_limiter.acquire():
            await asyncio.sleep(0.1)

        url = f"{self.base_url}/{endpoint.lstrip('/')}"

        # Copy per request: a retrying object keeps per-call state
        async for attempt in self.retry_config.copy():
            with attempt:
                try:
                    response = await self.session.get(
                        url, params=params, headers=self._headers(), timeout=self.timeout
                    )
                    response.raise_for_status()
                except httpx.HTTPStatusError as e:
                    logger.warning(
                        "HTTP error in provider request",
                        provider=self.name,
                        endpoint=endpoint,
                        status_code=e.response.status_code,
                        attempt=attempt.retry_state.attempt_number,
                    )
                    raise
                except (httpx.NetworkError, httpx.TimeoutException) as e:
                    logger.warning(
                        "Network error in provider request",
                        provider=self.name,
                        endpoint=endpoint,
                        error=str(e),
                        attempt=attempt.retry_state.attempt_number,
                    )
                    raise
                return response.json()

    async def close(self) -> None:
        await self.session.aclose()
