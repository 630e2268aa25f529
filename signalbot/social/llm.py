"""LLM-based social signal scorer."""

import json
import time
from collections.abc import Callable
from typing import Any

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..core.interfaces import SocialScorer, TweetSource
from ..core.types import SocialScore, TokenSnapshot

logger = structlog.get_logger(__name__)

MAX_TWEETS = 20
MAX_VIBE_SCORE = 60.0

# Tokens this young may have no chatter yet and keep a small score
NO_TWEETS_EARLY_MINUTES = 30
NO_TWEETS_EARLY_SCORE = 5.0

SYSTEM_PROMPT = (
    "You rate crypto social chatter for a newly launched Solana token. "
    "Answer with a JSON object: "
    '{"vibeScore": <0-60>, "reasoning": "<one paragraph>", "redFlags": ["..."]}. '
    "Reward organic discussion from diverse authors and a clear narrative; "
    "penalize copy-paste shilling, paid groups and rug warnings."
)


def build_prompt(token: TokenSnapshot, tweets: list[str]) -> str:
    """Build the user prompt for a token and its tweets."""
    lines = [
        f"Token: {token.name} (${token.symbol})",
        f"Mint: {token.mint}",
        f"Market cap: ${token.market_cap_usd:,.0f}",
        f"Liquidity: ${token.liquidity_usd:,.0f}",
        "Tweets:",
    ]
    lines.extend(f"- {tweet.strip()}" for tweet in tweets[:MAX_TWEETS])
    return "\n".join(lines)


def parse_social_response(content: str) -> SocialScore | None:
    """Parse the model's JSON answer, None if it is unusable."""
    try:
        payload: dict[str, Any] = json.loads(content)
    except json.JSONDecodeError:
        # Models sometimes wrap JSON in prose or code fences
        start, end = content.find("{"), content.rfind("}")
        if start < 0 or end <= start:
            return None
        try:
            payload = json.loads(content[start : end + 1])
        except json.JSONDecodeError:
            return None

    try:
        vibe = float(payload.get("vibeScore", 0))
    except (TypeError, ValueError):
        return None

    flags = payload.get("redFlags") or []
    return SocialScore(
        vibe_score=max(0.0, min(MAX_VIBE_SCORE, vibe)),
        reasoning=str(payload.get("reasoning") or ""),
        red_flags=[str(flag) for flag in flags] if isinstance(flags, list) else [],
    )


class LLMSocialScorer(SocialScorer):
    """Social scorer backed by an OpenAI-compatible chat completions API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.x.ai/v1",
        model: str = "grok-3-mini",
        session: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        now_fn: Callable[[], float] | None = None,
    ) -> None:
        """Initialize LLM social scorer.

        Args:
            api_key: API key for the LLM provider
            base_url: OpenAI-compatible API base URL
            model: Model name
            session: Optional httpx client session
            timeout: Request timeout in seconds
            now_fn: Optional function to get current timestamp (for testing)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.session = session or httpx.AsyncClient()
        self.timeout = timeout
        self._now_fn = now_fn or time.time
        self.retry_config = AsyncRetrying(
            stop=stop_after_attempt(2),
            wait=wait_exponential(multiplier=1, min=1, max=5),
            retry=retry_if_exception_type((httpx.NetworkError, httpx.TimeoutException)),
            reraise=True,
        )

    async def _complete(self, prompt: str) -> str:
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "response_format": {"type": "json_object"},
            "temperature": 0.2,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        async for attempt in self.retry_config.copy():
            with attempt:
                response = await self.session.post(
                    f"{self.base_url}/chat/completions",
                    json=body,
                    headers=headers,
                    timeout=self.timeout,
                )
                response.raise_for_status()
                data = response.json()
                return data["choices"][0]["message"]["content"]

    async def score_social(
        self, token: TokenSnapshot, tweets: list[str]
    ) -> SocialScore | None:
        """Score social chatter for a token.

        Args:
            token: Token snapshot
            tweets: Recent tweet texts

        Returns:
            SocialScore, or None when the call failed or the answer was unusable
        """
        if not tweets:
            # Nothing for the model to read
            early = token.age_minutes(self._now_fn()) < NO_TWEETS_EARLY_MINUTES
            logger.debug("No tweets to score", token_mint=token.mint, early=early)
            return SocialScore(vibe_score=NO_TWEETS_EARLY_SCORE if early else 0.0)

        try:
            content = await self._complete(build_prompt(token, tweets))
        except Exception as e:
            logger.warning("LLM social scoring failed", token_mint=token.mint, error=str(e))
            return None

        score = parse_social_response(content)
        if score is None:
            logger.warning("Unparseable LLM social response", token_mint=token.mint)
            return None

        logger.info(
            "Social score computed",
            token_mint=token.mint,
            vibe_score=score.vibe_score,
            red_flags=len(score.red_flags),
        )
        return score

    async def close(self) -> None:
        await self.session.aclose()


class NoopTweetSource(TweetSource):
    """Tweet source used when no Twitter integration is configured."""

    async def search(self, token: TokenSnapshot) -> list[str]:
        return []
