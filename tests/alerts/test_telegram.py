"""Tests for Telegram alert sink."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from signalbot.alerts.telegram import MAX_MESSAGE_LENGTH, TelegramAlertSink, format_alert
from signalbot.core.interfaces import AlertSink
from signalbot.core.types import Phase, ScoreResult, TokenLinks


def _ok_response(result: dict | None = None) -> MagicMock:
    response = MagicMock()
    response.json.return_value = {"ok": True, "result": result or {"message_id": 123}}
    response.raise_for_status.return_value = None
    return response


@pytest.fixture
def score():
    return ScoreResult(total_score=42, phase=Phase.TRACKING)


class TestFormatAlert:
    """Alert message rendering."""

    def test_contains_metrics(self, make_snapshot, score):
        text = format_alert("Organic chatter", make_snapshot(), score)

        assert "<b>Sad Penguin</b> ($PENGU) | TRACKING" in text
        assert "Score: <b>42</b>" in text
        assert "MC: $50,000 | Liq: $10,000" in text
        assert "Organic chatter" in text

    def test_escapes_html(self, make_snapshot, score):
        text = format_alert("<script>", make_snapshot(name="<b>Evil</b>"), score)

        assert "&lt;b&gt;Evil&lt;/b&gt;" in text
        assert "&lt;script&gt;" in text

    def test_links(self, make_snapshot, score):
        snap = make_snapshot(
            links=TokenLinks(dexscreener="https://dexscreener.com/solana/x")
        )

        text = format_alert("", snap, score)

        assert '<a href="https://dexscreener.com/solana/x">DexScreener</a>' in text
        assert "Birdeye" not in text

    def test_truncated(self, make_snapshot, score):
        text = format_alert("x" * 10000, make_snapshot(), score)
        assert len(text) <= MAX_MESSAGE_LENGTH + 1


class TestTelegramAlertSink:
    """Test Telegram alert sink functionality."""

    @pytest.fixture
    def alert_sink(self):
        """Create a test alert sink."""
        return TelegramAlertSink(
            bot_token="test_token_123",
            chat_id=-1001234,
            admin_user_ids=[12345, 67890],
            session=AsyncMock(spec=httpx.AsyncClient),
        )

    def test_is_alert_sink(self, alert_sink):
        assert isinstance(alert_sink, AlertSink)
        assert alert_sink.base_url == "https://api.telegram.org/bottest_token_123"

    @pytest.mark.asyncio
    async def test_send_alert(self, alert_sink, make_snapshot, score):
        alert_sink.session.post.return_value = _ok_response({"message_id": 987})

        message_id = await alert_sink.send_alert("narrative", make_snapshot(), score)

        assert message_id == "987"
        call = alert_sink.session.post.call_args
        assert call[0][0] == "https://api.telegram.org/bottest_token_123/sendMessage"
        assert call[1]["json"]["chat_id"] == -1001234
        assert call[1]["json"]["parse_mode"] == "HTML"
        assert "narrative" in call[1]["json"]["text"]

    @pytest.mark.asyncio
    async def test_send_alert_telegram_error(self, alert_sink, make_snapshot, score):
        response = MagicMock()
        response.json.return_value = {"ok": False, "description": "Bad Request"}
        response.raise_for_status.return_value = None
        alert_sink.session.post.return_value = response

        with pytest.raises(RuntimeError, match="Bad Request"):
            await alert_sink.send_alert("", make_snapshot(), score)

    @pytest.mark.asyncio
    async def test_push_to_all_admins(self, alert_sink):
        alert_sink.session.post.return_value = _ok_response()

        await alert_sink.push("Scanner started")

        assert alert_sink.session.post.call_count == 2
        chat_ids = [c[1]["json"]["chat_id"] for c in alert_sink.session.post.call_args_list]
        assert chat_ids == [12345, 67890]

    @pytest.mark.asyncio
    async def test_push_no_admins(self):
        alert_sink = TelegramAlertSink(
            bot_token="test_token",
            chat_id=1,
            session=AsyncMock(spec=httpx.AsyncClient),
        )

        await alert_sink.push("Test message")

        alert_sink.session.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_push_partial_failure(self, alert_sink):
        failure = MagicMock()
        failure.raise_for_status.side_effect = httpx.HTTPStatusError(
            "Error", request=MagicMock(), response=MagicMock()
        )
        alert_sink.session.post.side_effect = [_ok_response(), failure]

        await alert_sink.push("Test message")

        assert alert_sink.session.post.call_count == 2

    @pytest.mark.asyncio
    async def test_close(self, alert_sink):
        await alert_sink.close()
        alert_sink.session.aclose.assert_awaited_once()
