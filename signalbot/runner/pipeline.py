"""Scan cycle orchestrator and scheduler."""

import argparse
import asyncio
import json
import signal
import sys
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any

import structlog

from ..alerts.telegram import TelegramAlertSink
from ..cache.rejections import RetryCache
from ..config.settings import AppSettings, configure_logging, load_settings
from ..core.interfaces import AlertSink
from ..core.types import (
    CycleSummary,
    PairDetails,
    RejectionKind,
    ScoreBreakdown,
    ScoreResult,
    SeenTokenRecord,
    SocialScore,
    TokenSnapshot,
)
from ..data.birdeye import BirdeyeDetailsSource
from ..data.dexscreener import DexScreenerFeed
from ..data.goplus import GoPlusScanner
from ..filters.fake_pump import FakePumpDetector
from ..filters.hard import HardFilter
from ..filters.security import HolderGate, SecurityGate
from ..persist.storage import SQLiteStorage
from ..risk.cooldown import GLOBAL_LIMIT_REASON, CooldownManager
from ..scoring.engine import ScoringEngine, apply_age_adjustment
from ..scoring.matcher import WatchlistMatcher
from ..scoring.phase import PhaseDetector
from ..social.llm import LLMSocialScorer, NoopTweetSource
from .pool import BoundedWorkerPool

logger = structlog.get_logger(__name__)

# LP counts as burned from this share upwards
LP_BURNED_THRESHOLD_PERCENT = 90.0


class NoopAlertSink(AlertSink):
    """Alert sink used in dry runs or when Telegram is not configured."""

    async def send_alert(
        self, narrative: str, token: TokenSnapshot, score: ScoreResult
    ) -> str | None:
        logger.info(
            "Alert (noop)",
            token_mint=token.mint,
            symbol=token.symbol,
            score=score.total_score,
            phase=score.phase.value,
        )
        return None

    async def push(self, message: str) -> None:
        logger.info("Admin message (noop)", message=message)


def merge_details(snap: TokenSnapshot, details: PairDetails | None) -> TokenSnapshot:
    """Return a copy of the snapshot with holder/security details applied."""
    if details is None:
        return snap
    return snap.model_copy(
        update={
            "holder_count": details.holder_count,
            "top10_holders_percent": details.top10_percent,
            "is_mintable": details.is_mintable,
            "is_freezable": details.is_freezable,
            "lp_locked_percent": details.liquidity_locked_percent,
            "lp_burned": snap.lp_burned
            or details.liquidity_burned_percent >= LP_BURNED_THRESHOLD_PERCENT,
        }
    )


def build_narrative(score: ScoreResult, social: SocialScore | None) -> str:
    """Text shown under the alert metrics."""
    if social is not None and social.reasoning:
        text = social.reasoning
        if social.red_flags:
            text += "\nRed flags: " + ", ".join(social.red_flags)
        return text
    factors = [item.factor for item in score.breakdown if item.points > 0]
    return "Signals: " + ", ".join(factors) if factors else ""


class ScanPipeline:
    """Runs scan cycles: discovery, gating, scoring, cooldown and alerting."""

    def __init__(
        self,
        settings: AppSettings,
        components: dict[str, Any] | None = None,
        now_fn: Callable[[], float] | None = None,
    ) -> None:
        """Initialize scan pipeline.

        Args:
            settings: Application settings
            components: Pre-built collaborators (feed, details, scanner, tweets,
                social, alerts, storage); assembled from settings when omitted
            now_fn: Optional function to get current timestamp (for testing)
        """
        self.settings = settings
        self._now_fn = now_fn or time.time
        self.running = False
        self.is_scanning = False
        self._closed = False
        self.cycle_count = 0
        self.last_summary: CycleSummary | None = None

        self.components = components if components is not None else self._assemble(settings)
        self.components.setdefault("tweets", NoopTweetSource())
        self.components.setdefault("social", None)

        fake_pump = FakePumpDetector()
        self.hard_filter = HardFilter(
            blacklist=settings.blacklist_words,
            min_age_minutes=settings.filter_min_age_minutes,
            max_age_minutes=settings.filter_max_age_minutes,
            min_liquidity_usd=settings.filter_min_liquidity_usd,
            min_mc_usd=settings.filter_min_mc_usd,
            max_mc_usd=settings.filter_max_mc_usd,
            max_top10_percent=settings.max_top10_percent,
            fake_pump=fake_pump,
            now_fn=self._now_fn,
        )
        self.fake_pump = fake_pump
        self.scoring = ScoringEngine(
            min_mc_usd=settings.min_mc_usd,
            max_mc_usd=settings.max_mc_usd,
            min_liquidity_usd=settings.min_liquidity_usd,
        )
        self.phase_detector = PhaseDetector(
            min_mc_usd=settings.min_mc_usd,
            max_mc_usd=settings.max_mc_usd,
            now_fn=self._now_fn,
        )
        self.security_gate = SecurityGate(
            self.components["scanner"], timeout_seconds=settings.external_timeout_seconds
        )
        self.holder_gate = HolderGate(
            max_top10_percent=settings.max_top10_percent, now_fn=self._now_fn
        )
        self.matcher = WatchlistMatcher()
        self.cache = RetryCache(maxsize=settings.retry_cache_max_size, now_fn=self._now_fn)
        self.cooldown = CooldownManager(
            self.components["storage"],
            max_alerts_per_hour=settings.max_alerts_per_hour,
            cooldown_minutes=settings.alert_cooldown_minutes,
            realert_min_score=settings.realert_min_score,
            timeout_seconds=settings.external_timeout_seconds,
            now_fn=self._now_fn,
        )
        self.pool = BoundedWorkerPool(
            concurrency=settings.batch_size, pause_seconds=settings.batch_pause_seconds
        )

        logger.info(
            "Scan pipeline initialized",
            dry_run=settings.dry_run,
            batch_size=settings.batch_size,
            social_enabled=self.components["social"] is not None,
        )

    def _assemble(self, settings: AppSettings) -> dict[str, Any]:
        """Assemble collaborators from settings.

        Args:
            settings: Application settings

        Returns:
            Dictionary of assembled components
        """
        timeout = settings.external_timeout_seconds
        components: dict[str, Any] = {}

        components["feed"] = DexScreenerFeed(
            base_url=settings.dexscreener_base, timeout=timeout
        )

        if not settings.birdeye_api_key:
            logger.warning("Birdeye API key not provided, holder data may be unavailable")
        components["details"] = BirdeyeDetailsSource(
            base_url=settings.birdeye_base,
            api_key=settings.birdeye_api_key,
            timeout=timeout,
        )

        components["scanner"] = GoPlusScanner(base_url=settings.goplus_base, timeout=timeout)
        components["tweets"] = NoopTweetSource()

        if settings.llm_api_key:
            components["social"] = LLMSocialScorer(
                api_key=settings.llm_api_key,
                base_url=settings.llm_base_url,
                model=settings.llm_model,
                timeout=timeout,
                now_fn=self._now_fn,
            )
            logger.info("Using LLM social scorer", model=settings.llm_model)
        else:
            components["social"] = None
            logger.warning("LLM API key not provided, social score disabled")

        if settings.dry_run:
            components["alerts"] = NoopAlertSink()
            logger.info("Using noop alert sink (dry run)")
        elif settings.telegram_bot_token and settings.telegram_chat_id:
            components["alerts"] = TelegramAlertSink(
                bot_token=settings.telegram_bot_token,
                chat_id=settings.telegram_chat_id,
                admin_user_ids=settings.telegram_admin_ids,
            )
            logger.info("Using Telegram alert sink")
        else:
            components["alerts"] = NoopAlertSink()
            logger.warning("Telegram not configured, using noop alert sink")

        components["storage"] = SQLiteStorage.from_url(settings.database_url)

        return components

    async def _call(self, coro: Any) -> Any:
        return await asyncio.wait_for(coro, timeout=self.settings.external_timeout_seconds)

    async def run_cycle(self) -> CycleSummary | None:
        """Run one scan cycle.

        Returns:
            Cycle summary, or None if a cycle was already in flight or failed
        """
        if self.is_scanning:
            logger.warning("Scan already in progress, skipping cycle")
            return None

        self.is_scanning = True
        try:
            summary = CycleSummary()
            summary.swept = self.cache.sweep_expired()

            try:
                candidates = await self._call(self.components["feed"].fetch_candidates())
            except Exception as e:
                logger.warning("Discovery feed failed", error=str(e) or type(e).__name__)
                candidates = []
            summary.fetched = len(candidates)

            # Last snapshot wins for duplicate mints
            unique: dict[str, TokenSnapshot] = {}
            for snap in candidates:
                unique[snap.mint] = snap
            summary.unique = len(unique)

            fresh = self._partition(unique, summary)

            if fresh:
                try:
                    items = await self._call(self.components["storage"].load_watchlist())
                except Exception as e:
                    logger.warning("Failed to load watchlist", error=str(e))
                    items = []
                self.matcher.replace(items)

                outcomes = await self.pool.run(fresh, self._process_token)
                for outcome in outcomes:
                    summary.evaluated += 1
                    if isinstance(outcome, Exception):
                        summary.errors += 1
                    elif outcome is RejectionKind.ALERTED:
                        summary.alerts_sent += 1
                    else:
                        if outcome is RejectionKind.PIPELINE_ERROR:
                            summary.errors += 1
                        summary.rejections[outcome.code] = (
                            summary.rejections.get(outcome.code, 0) + 1
                        )

            self.cycle_count += 1
            self.last_summary = summary
            logger.info("Scan cycle completed", **summary.model_dump())
            return summary

        except Exception as e:
            logger.error("Error in scan cycle", error=str(e))
            try:
                await self.components["alerts"].push(f"🚨 Scan cycle error: {str(e)}")
            except Exception as push_error:
                logger.error("Failed to push cycle error", error=str(push_error))
            return None
        finally:
            self.is_scanning = False

    def _partition(
        self, unique: dict[str, TokenSnapshot], summary: CycleSummary
    ) -> list[TokenSnapshot]:
        """Drop blocked tokens; expired entries are evicted and retried."""
        now = self._now_fn()
        fresh: list[TokenSnapshot] = []
        for mint, snap in unique.items():
            entry = self.cache.peek(mint)
            if entry is None:
                fresh.append(snap)
            elif entry.is_expired(now):
                self.cache.evict(mint)
                summary.expired_retries += 1
                fresh.append(snap)
            else:
                summary.skipped_cached += 1
        return fresh

    async def _process_token(self, snap: TokenSnapshot) -> RejectionKind:
        """Evaluate one token and cache the outcome. Never raises."""
        try:
            outcome = await self._evaluate_token(snap)
        except Exception as e:
            logger.error(
                "Error processing token",
                token_mint=snap.mint,
                error=str(e) or type(e).__name__,
            )
            outcome = RejectionKind.PIPELINE_ERROR

        self.cache.reject(snap.mint, outcome)
        if outcome is not RejectionKind.ALERTED:
            logger.debug("Token rejected", token_mint=snap.mint, reason=outcome.code)
        return outcome

    async def _fetch_details(self, mint: str) -> PairDetails | None:
        try:
            return await self._call(self.components["details"].fetch_details(mint))
        except Exception as e:
            logger.warning("Details lookup failed", token_mint=mint, error=str(e) or type(e).__name__)
            return None

    async def _fetch_social(self, snap: TokenSnapshot) -> SocialScore | None:
        try:
            tweets = await self._call(self.components["tweets"].search(snap))
        except Exception as e:
            logger.warning("Tweet search failed", token_mint=snap.mint, error=str(e) or type(e).__name__)
            tweets = []

        scorer = self.components["social"]
        if scorer is None:
            return None

        try:
            return await self._call(scorer.score_social(snap, tweets))
        except Exception as e:
            logger.warning("Social scoring failed", token_mint=snap.mint, error=str(e) or type(e).__name__)
            return None

    async def _evaluate_token(self, snap: TokenSnapshot) -> RejectionKind:
        """Run the gate, score, enrich and cooldown sequence for one token.

        Returns:
            ALERTED on success, otherwise the first rejection kind hit
        """
        # Market checks need no details, so they run before the lookup
        decision = self.hard_filter.evaluate_market(snap)
        if not decision.passed:
            return RejectionKind.from_code(decision.reason)

        details = await self._fetch_details(snap.mint)
        snap = merge_details(snap, details)

        decision = self.hard_filter.evaluate_holders(snap)
        if not decision.passed:
            return RejectionKind.from_code(decision.reason)

        if self.fake_pump.is_manipulated(snap):
            return RejectionKind.MANIPULATION

        match = self.matcher.match(snap)
        raw = self.scoring.score(snap, match)
        adjusted = apply_age_adjustment(raw, snap.age_minutes(self._now_fn()))
        if adjusted.total_score < self.settings.min_mechanical_score:
            return RejectionKind.WEAK_SCORE

        decision = await self.security_gate.evaluate(snap)
        if not decision.passed:
            return RejectionKind.from_code(decision.reason)

        decision = self.holder_gate.evaluate(snap, details)
        if not decision.passed:
            return RejectionKind.from_code(decision.reason)

        social = await self._fetch_social(snap)
        final = adjusted.model_copy(deep=True)
        social_points = (
            round(social.vibe_score * self.settings.social_weight) if social else 0
        )
        if social_points:
            final.adjustments.append(
                ScoreBreakdown(
                    factor="Social",
                    points=social_points,
                    details=f"Vibe {social.vibe_score:.0f}",
                )
            )
            final.total_score += social_points

        if final.total_score < self.settings.alert_score_threshold:
            logger.info(
                "Combined score below threshold",
                token_mint=snap.mint,
                mechanical=adjusted.total_score,
                social=social_points,
                threshold=self.settings.alert_score_threshold,
            )
            return RejectionKind.LOW_COMBINED_SCORE

        final.phase = self.phase_detector.detect(snap, final)

        alert_decision = await self._call(
            self.cooldown.can_alert(snap.mint, final.total_score)
        )
        if not alert_decision.allowed:
            logger.info(
                "Alert blocked", token_mint=snap.mint, reason=alert_decision.reason
            )
            if alert_decision.reason == GLOBAL_LIMIT_REASON:
                return RejectionKind.RATE_LIMITED
            return RejectionKind.COOLDOWN

        try:
            return await self._alert(snap, final, social, match.matched_meme is not None)
        except BaseException:
            self.cooldown.release(snap.mint)
            raise

    async def _alert(
        self,
        snap: TokenSnapshot,
        score: ScoreResult,
        social: SocialScore | None,
        meme_match: bool,
    ) -> RejectionKind:
        storage = self.components["storage"]
        mint = snap.mint

        await self._save_analysis(snap, score, social, meme_match)

        try:
            message_id = await self._call(
                self.components["alerts"].send_alert(
                    build_narrative(score, social), snap, score
                )
            )
        except Exception as e:
            logger.error("Failed to send alert", token_mint=mint, error=str(e) or type(e).__name__)
            self.cooldown.release(mint)
            return RejectionKind.ALERT_FAILED

        await self.cooldown.record_alert(
            mint,
            score.total_score,
            score.phase.value,
            price=snap.price_usd,
            symbol=snap.symbol,
        )

        try:
            await self._call(
                storage.record_performance(
                    mint=mint,
                    symbol=snap.symbol,
                    alert_mc=snap.market_cap_usd,
                    entry_price=snap.price_usd,
                    score=score.total_score,
                    phase=score.phase.value,
                    ts=self._now_fn(),
                )
            )
        except Exception as e:
            logger.error("Failed to record performance", token_mint=mint, error=str(e))

        logger.info(
            "Token alerted",
            token_mint=mint,
            symbol=snap.symbol,
            score=score.total_score,
            phase=score.phase.value,
            message_id=message_id,
        )
        return RejectionKind.ALERTED

    async def _save_analysis(
        self,
        snap: TokenSnapshot,
        score: ScoreResult,
        social: SocialScore | None,
        meme_match: bool,
    ) -> None:
        """Persist the analysis payload, keeping any prior alert fields."""
        storage = self.components["storage"]
        try:
            existing = await self._call(storage.get_seen_token(snap.mint))
        except Exception as e:
            logger.error("Failed to read seen-token record", token_mint=snap.mint, error=str(e))
            existing = None

        analysis = {
            "score": score.model_dump(mode="json"),
            "social": social.model_dump(mode="json") if social else None,
            "meme_match": meme_match,
        }
        record = SeenTokenRecord(
            symbol=snap.symbol,
            first_seen_at=self._now_fn(),
            last_alert_at=existing.last_alert_at if existing else None,
            last_score=existing.last_score if existing else 0,
            last_phase=existing.last_phase if existing else "",
            last_price=existing.last_price if existing else None,
            stored_analysis=json.dumps(analysis),
            raw_snapshot=snap.model_dump_json(),
        )

        try:
            await self._call(storage.save_seen_token(snap.mint, record))
        except Exception as e:
            logger.error("Failed to save seen-token record", token_mint=snap.mint, error=str(e))

    def get_status(self) -> dict[str, Any]:
        """Get current pipeline status."""
        return {
            "running": self.running,
            "is_scanning": self.is_scanning,
            "cycles": self.cycle_count,
            "cached_rejections": len(self.cache),
            "cooldown": self.cooldown.get_state_summary(),
            "last_summary": self.last_summary.model_dump() if self.last_summary else None,
        }

    async def run_forever(self) -> None:
        """Run scan cycles until stopped, sleeping between completed cycles."""
        logger.info("Starting scan pipeline", dry_run=self.settings.dry_run)
        self.running = True

        storage = self.components["storage"]
        if hasattr(storage, "initialize"):
            await storage.initialize()

        mode = "dry run" if self.settings.dry_run else "live"
        await self.components["alerts"].push(f"🤖 Signal scanner started ({mode})")

        start_time = datetime.now()

        try:
            while self.running:
                await self.run_cycle()

                if self.cycle_count and self.cycle_count % 10 == 0:
                    uptime = (datetime.now() - start_time).total_seconds()
                    logger.info(
                        "Pipeline metrics",
                        cycles=self.cycle_count,
                        uptime_seconds=uptime,
                        alerts_in_window=self.cooldown.alerts_in_window,
                        cached_rejections=len(self.cache),
                    )

                await asyncio.sleep(self.settings.scan_interval_seconds)

        except asyncio.CancelledError:
            logger.info("Pipeline cancelled")
        except Exception as e:
            logger.error("Pipeline error", error=str(e))
            await self.components["alerts"].push(f"🚨 Pipeline error: {str(e)}")
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Stop the pipeline and close collaborators."""
        self.running = False
        if self._closed:
            return
        self._closed = True
        logger.info("Stopping scan pipeline")

        try:
            await self.components["alerts"].push("🛑 Signal scanner stopped")
        except Exception as e:
            logger.error("Failed to push shutdown message", error=str(e))

        for name in ("feed", "details", "scanner", "social", "alerts", "storage"):
            component = self.components.get(name)
            if component is not None and hasattr(component, "close"):
                try:
                    await component.close()
                except Exception as e:
                    logger.warning("Failed to close component", component=name, error=str(e))


async def main() -> None:
    """Main entry point for the signal scanner."""
    parser = argparse.ArgumentParser(description="Solana Memecoin Signal Scanner")
    parser.add_argument(
        "--config", default="configs/paper.yaml", help="Configuration file path"
    )
    parser.add_argument(
        "--profile",
        default="paper",
        choices=["dev", "paper", "prod"],
        help="Configuration profile",
    )
    parser.add_argument(
        "--once", action="store_true", help="Run a single scan cycle and exit"
    )

    args = parser.parse_args()

    try:
        settings = load_settings(args.profile, args.config)
        configure_logging(settings.log_level)
        logger.info("Settings loaded", profile=args.profile, config=args.config)

        pipeline = ScanPipeline(settings)

        if args.once:
            await pipeline.components["storage"].initialize()
            summary = await pipeline.run_cycle()
            await pipeline.stop()
            print(json.dumps(summary.model_dump() if summary else {}, indent=2))
            return

        def signal_handler(signum, frame):
            logger.info("Received shutdown signal")
            pipeline.running = False

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        await pipeline.run_forever()

    except Exception as e:
        logger.error("Fatal error", error=str(e))
        sys.exit(1)


def cli() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    cli()
