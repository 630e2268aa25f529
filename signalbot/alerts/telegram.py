"""Telegram alert sink for token signals."""

import html

import httpx
import structlog

from ..core.interfaces import AlertSink
from ..core.types import ScoreResult, TokenSnapshot

logger = structlog.get_logger(__name__)

# Telegram rejects messages over 4096 characters
MAX_MESSAGE_LENGTH = 4000


def format_alert(narrative: str, token: TokenSnapshot, score: ScoreResult) -> str:
    """Render an alert as Telegram HTML.

    Args:
        narrative: Social narrative or summary text
        token: Token snapshot
        score: Final score with phase

    Returns:
        HTML message text
    """
    name = html.escape(token.name)
    symbol = html.escape(token.symbol)
    lines = [
        f"🚨 <b>{name}</b> (${symbol}) | {score.phase.value}",
        f"<code>{token.mint}</code>",
        "",
        f"Score: <b>{score.total_score}</b>",
        f"MC: ${token.market_cap_usd:,.0f} | Liq: ${token.liquidity_usd:,.0f}",
        f"Vol 5m: ${token.volume_5m_usd:,.0f} | 5m: {token.price_change_5m:+.1f}%",
        f"Txs 5m: {token.txs_5m.buys} buys / {token.txs_5m.sells} sells",
    ]
    if narrative:
        lines.extend(["", html.escape(narrative)])

    links = [
        f'<a href="{html.escape(url)}">{label}</a>'
        for label, url in (
            ("DexScreener", token.links.dexscreener),
            ("Birdeye", token.links.birdeye),
            ("pump.fun", token.links.pumpfun),
            ("X", token.links.twitter),
        )
        if url
    ]
    if links:
        lines.extend(["", " | ".join(links)])

    text = "\n".join(lines)
    if len(text) > MAX_MESSAGE_LENGTH:
        text = text[:MAX_MESSAGE_LENGTH] + "…"
    return text


class TelegramAlertSink(AlertSink):
    """Telegram-based alert sink implementation."""

    def __init__(
        self,
        bot_token: str,
        chat_id: int | str,
        admin_user_ids: list[int] | None = None,
        session: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize Telegram alert sink.

        Args:
            bot_token: Telegram bot token
            chat_id: Signal channel or group receiving token alerts
            admin_user_ids: Admin user IDs receiving operational messages
            session: Optional HTTP session for requests
        """
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.admin_user_ids = admin_user_ids or []
        self.session = session or httpx.AsyncClient()
        self.base_url = f"https://api.telegram.org/bot{bot_token}"

        logger.info(
            "Telegram alert sink initialized",
            chat_id=chat_id,
            admin_count=len(self.admin_user_ids),
        )

    async def send_alert(
        self, narrative: str, token: TokenSnapshot, score: ScoreResult
    ) -> str | None:
        """Send a token alert to the signal chat.

        Args:
            narrative: Social narrative or summary text
            token: Token snapshot
            score: Final score with phase

        Returns:
            Telegram message id as a string

        Raises:
            httpx.HTTPStatusError: On non-2xx responses
            RuntimeError: If Telegram reports an error
        """
        result = await self._send_message(
            self.chat_id, format_alert(narrative, token, score)
        )
        message_id = result.get("message_id")
        logger.info(
            "Token alert sent",
            token_mint=token.mint,
            score=score.total_score,
            message_id=message_id,
        )
        return str(message_id) if message_id is not None else None

    async def push(self, message: str) -> None:
        """Push a message to all admin users.

        Args:
            message: Message to send
        """
        if not self.admin_user_ids:
            logger.warning("No admin users configured, skipping push")
            return

        success_count = 0
        for user_id in self.admin_user_ids:
            try:
                await self._send_message(user_id, message)
                success_count += 1
            except Exception as e:
                logger.error(
                    "Failed to send message to admin", user_id=user_id, error=str(e)
                )

        logger.info(
            "Admin push completed",
            total_admins=len(self.admin_user_ids),
            success_count=success_count,
        )

    async def _send_message(self, chat_id: int | str, text: str) -> dict:
        url = f"{self.base_url}/sendMessage"
        data = {
            "chat_id": chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }

        response = await self.session.post(url, json=data)
        response.raise_for_status()

        result = response.json()
        if not result.get("ok"):
            raise RuntimeError(
                f"Telegram API error: {result.get('description', 'Unknown error')}"
            )
        return result.get("result") or {}

    async def close(self) -> None:
        """Close the alert sink and cleanup resources."""
        if self.session:
            await self.session.aclose()
        logger.info("Telegram alert sink closed")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
