"""Tests for data adapters."""

import httpx
import pytest
import respx

from signalbot.data.birdeye import BirdeyeDetailsSource, map_birdeye_details
from signalbot.data.dexscreener import DexScreenerFeed, map_dexscreener_pair_to_snapshot
from signalbot.data.goplus import GoPlusScanner, evaluate_goplus_report

MINT_A = "7GCihgDB8fe6KNjn2MYtkzZcRjQy3t9GHdC8uHYmW2hr"
MINT_B = "9BB6NFEcjBCtnNLFko2FqVQBq8HHM13kCyYcdQbgpump"


def _pair(mint: str, liquidity: float, **overrides) -> dict:
    pair = {
        "chainId": "solana",
        "dexId": "raydium",
        "url": f"https://dexscreener.com/solana/{mint.lower()}",
        "pairAddress": f"pair-{mint[:6]}-{int(liquidity)}",
        "baseToken": {"address": mint, "name": "Sad Penguin", "symbol": "PENGU"},
        "priceUsd": "0.00005",
        "txns": {"m5": {"buys": 20, "sells": 5}, "h1": {"buys": 200, "sells": 80}},
        "volume": {"m5": 2000, "h1": 8000},
        "priceChange": {"m5": 5.5},
        "liquidity": {"usd": liquidity},
        "fdv": 52000,
        "marketCap": 50000,
        "pairCreatedAt": 1_699_998_200_000,
        "info": {"socials": [{"type": "twitter", "url": "https://x.com/sadpengu"}]},
    }
    pair.update(overrides)
    return pair


@pytest.fixture
def sample_pair():
    """Sample DexScreener pair object."""
    return _pair(MINT_A, 10000)


class TestDexScreenerMapping:
    """Pair to snapshot mapping."""

    def test_maps_market_fields(self, sample_pair):
        snap = map_dexscreener_pair_to_snapshot(sample_pair)

        assert snap.mint == MINT_A
        assert snap.name == "Sad Penguin"
        assert snap.symbol == "PENGU"
        assert snap.price_usd == 0.00005
        assert snap.market_cap_usd == 50000
        assert snap.liquidity_usd == 10000
        assert snap.volume_5m_usd == 2000
        assert snap.volume_30m_usd == 6000
        assert snap.txs_5m.buys == 20
        assert snap.txs_5m.sells == 5
        assert snap.price_change_5m == 5.5
        assert snap.created_at.timestamp() == 1_699_998_200
        assert snap.links.twitter == "https://x.com/sadpengu"
        assert snap.source == "dexscreener"

    def test_falls_back_to_fdv(self, sample_pair):
        del sample_pair["marketCap"]
        assert map_dexscreener_pair_to_snapshot(sample_pair).market_cap_usd == 52000

    def test_missing_launch_time(self, sample_pair):
        del sample_pair["pairCreatedAt"]
        assert map_dexscreener_pair_to_snapshot(sample_pair).created_at is None

    def test_skips_other_chains(self, sample_pair):
        sample_pair["chainId"] = "base"
        assert map_dexscreener_pair_to_snapshot(sample_pair) is None

    def test_skips_evm_addresses(self, sample_pair):
        sample_pair["baseToken"]["address"] = "0xabc"
        assert map_dexscreener_pair_to_snapshot(sample_pair) is None


class TestDexScreenerFeed:
    """Discovery via latest token profiles."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_fetch_candidates(self):
        respx.get("https://api.dexscreener.com/token-profiles/latest/v1").mock(
            return_value=httpx.Response(
                200,
                json=[
                    {"chainId": "solana", "tokenAddress": MINT_A},
                    {"chainId": "ethereum", "tokenAddress": "0xdeadbeef"},
                    {"chainId": "solana", "tokenAddress": MINT_A},
                    {"chainId": "solana", "tokenAddress": MINT_B},
                ],
            )
        )
        tokens_route = respx.get(
            f"https://api.dexscreener.com/latest/dex/tokens/{MINT_A},{MINT_B}"
        ).mock(
            return_value=httpx.Response(
                200,
                json={
                    "pairs": [
                        _pair(MINT_A, 1000),
                        _pair(MINT_A, 5000),
                        _pair(MINT_B, 7000),
                    ]
                },
            )
        )

        feed = DexScreenerFeed(session=httpx.AsyncClient())
        snapshots = await feed.fetch_candidates()
        await feed.close()

        assert tokens_route.called
        by_mint = {snap.mint: snap for snap in snapshots}
        assert set(by_mint) == {MINT_A, MINT_B}
        assert by_mint[MINT_A].liquidity_usd == 5000

    @pytest.mark.asyncio
    @respx.mock
    async def test_fetch_candidates_error_returns_empty(self):
        respx.get("https://api.dexscreener.com/token-profiles/latest/v1").mock(
            return_value=httpx.Response(500)
        )

        feed = DexScreenerFeed(session=httpx.AsyncClient())
        assert await feed.fetch_candidates() == []
        await feed.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_tokens_skips_failed_chunk(self):
        respx.get(f"https://api.dexscreener.com/latest/dex/tokens/{MINT_A}").mock(
            return_value=httpx.Response(429)
        )

        feed = DexScreenerFeed(session=httpx.AsyncClient())
        assert await feed.get_tokens([MINT_A]) == []
        await feed.close()


class TestBirdeye:
    """Holder and authority details."""

    def test_map_details(self):
        details = map_birdeye_details(
            {"holder": 321},
            {
                "top10HolderPercent": 0.35,
                "mintAuthority": None,
                "freezeAuthority": "FrzAuth111",
                "lockInfo": {"lockedPercent": 12.5, "burnedPercent": 95},
            },
        )

        assert details.holder_count == 321
        assert details.top10_percent == pytest.approx(35.0)
        assert details.is_mintable is False
        assert details.is_freezable is True
        assert details.liquidity_locked_percent == 12.5
        assert details.liquidity_burned_percent == 95

    def test_map_details_missing_fields(self):
        details = map_birdeye_details({}, {})

        assert details.holder_count == 0
        assert details.top10_percent == 0.0
        assert details.is_mintable is False

    @pytest.mark.asyncio
    @respx.mock
    async def test_fetch_details(self):
        overview = respx.get("https://public-api.birdeye.so/defi/token_overview").mock(
            return_value=httpx.Response(200, json={"success": True, "data": {"holder": 80}})
        )
        respx.get("https://public-api.birdeye.so/defi/token_security").mock(
            return_value=httpx.Response(
                200, json={"success": True, "data": {"top10HolderPercent": 0.2}}
            )
        )

        source = BirdeyeDetailsSource(api_key="secret", session=httpx.AsyncClient())
        details = await source.fetch_details(MINT_A)
        await source.close()

        assert details.holder_count == 80
        assert details.top10_percent == pytest.approx(20.0)
        request = overview.calls[0].request
        assert request.headers["X-API-KEY"] == "secret"
        assert request.headers["x-chain"] == "solana"
        assert request.url.params["address"] == MINT_A

    @pytest.mark.asyncio
    @respx.mock
    async def test_fetch_details_not_found(self):
        respx.get("https://public-api.birdeye.so/defi/token_overview").mock(
            return_value=httpx.Response(404)
        )

        source = BirdeyeDetailsSource(session=httpx.AsyncClient())
        assert await source.fetch_details(MINT_A) is None
        await source.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_fetch_details_reported_failure(self):
        respx.get("https://public-api.birdeye.so/defi/token_overview").mock(
            return_value=httpx.Response(200, json={"success": False})
        )
        respx.get("https://public-api.birdeye.so/defi/token_security").mock(
            return_value=httpx.Response(200, json={"success": True, "data": {}})
        )

        source = BirdeyeDetailsSource(session=httpx.AsyncClient())
        assert await source.fetch_details(MINT_A) is None
        await source.close()


class TestGoPlus:
    """Security scanner."""

    def test_clean_report_is_safe(self):
        report = {
            "mintable": {"status": "0"},
            "freezable": {"status": "0"},
            "closable": {"status": "0"},
            "non_transferable": "0",
            "transfer_hook": [],
        }
        assert evaluate_goplus_report(report).safe is True

    @pytest.mark.parametrize(
        "report, reason",
        [
            ({"mintable": {"status": "1"}}, "MINTABLE"),
            ({"freezable": {"status": "1"}}, "FREEZABLE"),
            ({"balance_mutable_authority": {"status": "1"}}, "BALANCE_MUTABLE_AUTHORITY"),
            ({"non_transferable": "1"}, "NON_TRANSFERABLE"),
            ({"transfer_hook": [{"address": "hook"}]}, "TRANSFER_HOOK"),
        ],
    )
    def test_dangerous_reports(self, report, reason):
        verdict = evaluate_goplus_report(report)

        assert verdict.safe is False
        assert verdict.reason == reason

    @pytest.mark.asyncio
    @respx.mock
    async def test_check_security(self):
        route = respx.get("https://api.gopluslabs.io/api/v1/solana/token_security").mock(
            return_value=httpx.Response(
                200, json={"code": 1, "result": {MINT_A: {"mintable": {"status": "0"}}}}
            )
        )

        scanner = GoPlusScanner(session=httpx.AsyncClient())
        verdict = await scanner.check_security(MINT_A)
        await scanner.close()

        assert verdict.safe is True
        assert route.calls[0].request.url.params["contract_addresses"] == MINT_A

    @pytest.mark.asyncio
    @respx.mock
    async def test_check_security_no_report_raises(self):
        respx.get("https://api.gopluslabs.io/api/v1/solana/token_security").mock(
            return_value=httpx.Response(200, json={"code": 1, "result": {}})
        )

        scanner = GoPlusScanner(session=httpx.AsyncClient())
        with pytest.raises(LookupError):
            await scanner.check_security(MINT_A)
        await scanner.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_check_security_http_error_propagates(self):
        respx.get("https://api.gopluslabs.io/api/v1/solana/token_security").mock(
            return_value=httpx.Response(503)
        )

        scanner = GoPlusScanner(session=httpx.AsyncClient())
        with pytest.raises(httpx.HTTPStatusError):
            await scanner.check_security(MINT_A)
        await scanner.close()
