"""Core data types for the signal scanner."""

import time
from datetime import UTC, datetime
from enum import Enum, StrEnum

from pydantic import BaseModel, ConfigDict, Field


class TxCounts(BaseModel):
    """Buy/sell transaction counts over a window."""

    buys: int = Field(default=0, description="Buy transactions")
    sells: int = Field(default=0, description="Sell transactions")

    @property
    def total(self) -> int:
        return self.buys + self.sells

    @property
    def buy_ratio(self) -> float:
        """Share of buys in all transactions, 0 when there were none."""
        return self.buys / self.total if self.total > 0 else 0.0


class TokenLinks(BaseModel):
    """External link references for a token."""

    dexscreener: str | None = Field(default=None, description="DexScreener pair URL")
    pumpfun: str | None = Field(default=None, description="pump.fun page URL")
    birdeye: str | None = Field(default=None, description="Birdeye token URL")
    twitter: str | None = Field(default=None, description="Project Twitter/X URL")


class TokenSnapshot(BaseModel):
    """Point-in-time read of a token's market, holder and security metrics.

    Numeric fields default to 0 when upstream data omits them. Age is never
    stored; it is always derived from ``created_at`` at the time of the check.
    """

    model_config = ConfigDict(frozen=True)

    mint: str = Field(description="Token mint / contract address")
    chain: str = Field(default="solana", description="Blockchain identifier")
    name: str = Field(default="Unknown", description="Token name")
    symbol: str = Field(default="Unknown", description="Token symbol")
    pair_address: str | None = Field(default=None, description="Main pool address")

    price_usd: float = Field(default=0.0, description="Price in USD")
    market_cap_usd: float = Field(default=0.0, description="Market cap in USD")
    liquidity_usd: float = Field(default=0.0, description="Liquidity in USD")
    volume_5m_usd: float = Field(default=0.0, description="5-minute volume in USD")
    volume_30m_usd: float = Field(default=0.0, description="30-minute volume in USD")
    txs_5m: TxCounts = Field(default_factory=TxCounts, description="5m transactions")
    price_change_5m: float = Field(
        default=0.0, description="5-minute price change percentage"
    )

    holder_count: int = Field(default=0, description="Number of holders")
    top10_holders_percent: float = Field(
        default=0.0, description="Supply share of the top 10 holders (percent)"
    )
    is_mintable: bool = Field(default=False, description="Mint authority still open")
    is_freezable: bool = Field(default=False, description="Freeze authority open")
    lp_locked_percent: float = Field(default=0.0, description="Locked LP percent")
    lp_burned: bool = Field(default=False, description="LP burned")

    created_at: datetime | None = Field(default=None, description="Launch time")
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="Observation time"
    )
    links: TokenLinks = Field(default_factory=TokenLinks, description="Links")
    source: str = Field(default="unknown", description="Data source identifier")

    def age_minutes(self, now: float | None = None) -> float:
        """Minutes since launch; 0 when the launch time is unknown."""
        if self.created_at is None:
            return 0.0
        now = time.time() if now is None else now
        return max(0.0, (now - self.created_at.timestamp()) / 60.0)

    @property
    def liq_mc_ratio(self) -> float:
        if self.market_cap_usd <= 0:
            return 0.0
        return self.liquidity_usd / self.market_cap_usd


class PairDetails(BaseModel):
    """Holder and security details fetched for a single token."""

    holder_count: int = Field(default=0, description="Number of holders")
    top10_percent: float = Field(default=0.0, description="Top-10 holder share")
    is_mintable: bool = Field(default=False, description="Mint authority open")
    is_freezable: bool = Field(default=False, description="Freeze authority open")
    liquidity_locked_percent: float = Field(default=0.0, description="Locked LP")
    liquidity_burned_percent: float = Field(default=0.0, description="Burned LP")


class FilterDecision(BaseModel):
    """Outcome of a pass/fail gate."""

    passed: bool = Field(description="Whether the token passed the gate")
    reason: str | None = Field(default=None, description="First failing rule")


class ScoreBreakdown(BaseModel):
    """Single scoring factor for audit."""

    factor: str
    points: int
    details: str = ""


class Phase(StrEnum):
    """Lifecycle label, recomputed on every evaluation (not persisted state)."""

    SPOTTED = "SPOTTED"
    TRACKING = "TRACKING"
    COOKING = "COOKING"
    SERVED = "SERVED"


class ScoreResult(BaseModel):
    """Mechanical score with its audit trail.

    ``breakdown`` holds the additive factors; ``adjustments`` holds the
    post-hoc changes (fake-pump cap, age curve, floor at zero), so that
    ``total_score == breakdown_total + adjustments_total`` always holds.
    """

    total_score: int = Field(default=0, description="Score after adjustments")
    breakdown: list[ScoreBreakdown] = Field(default_factory=list)
    adjustments: list[ScoreBreakdown] = Field(default_factory=list)
    phase: Phase = Field(
        default=Phase.SPOTTED, description="Placeholder until PhaseDetector runs"
    )

    @property
    def breakdown_total(self) -> int:
        return sum(item.points for item in self.breakdown)

    @property
    def adjustments_total(self) -> int:
        return sum(item.points for item in self.adjustments)


class RejectionKind(Enum):
    """Closed set of rejection reasons, each carrying its retry TTL in minutes.

    ``None`` means the token stays blocked for the lifetime of the process.
    """

    BLACKLISTED_NAME = ("BLACKLISTED_NAME", None)
    TOO_YOUNG = ("TOO_YOUNG", 10)
    TOO_OLD = ("TOO_OLD", None)
    LIQUIDITY_TOO_LOW = ("LIQUIDITY_TOO_LOW", 10)
    LIQ_MC_RATIO_TOO_HIGH = ("LIQ_MC_RATIO_TOO_HIGH", None)
    LIQ_MC_RATIO_TOO_LOW = ("LIQ_MC_RATIO_TOO_LOW", None)
    LOW_LIQ_IN_SAFE_ZONE = ("LOW_LIQ_IN_SAFE_ZONE", 30)
    MC_TOO_HIGH = ("MC_TOO_HIGH", 60)
    MC_TOO_LOW = ("MC_TOO_LOW", 10)
    FAKE_PUMP = ("FAKE_PUMP", None)
    MANIPULATION = ("MANIPULATION", None)
    MINTABLE_OR_PAUSABLE = ("MINTABLE_OR_PAUSABLE", None)
    WHALE_TRAP = ("WHALE_TRAP", None)
    NOT_ENOUGH_HOLDERS = ("NOT_ENOUGH_HOLDERS", 10)
    RUG_RISK_LOW_LOCK = ("RUG_RISK_LOW_LOCK", 30)
    WEAK_SCORE = ("WEAK_SCORE", 15)
    SECURITY_UNSAFE = ("SECURITY_UNSAFE", None)
    SECURITY_CHECK_FAILED = ("SECURITY_CHECK_FAILED", 30)
    HOLDER_DATA_UNAVAILABLE = ("HOLDER_DATA_UNAVAILABLE", 10)
    LOW_COMBINED_SCORE = ("LOW_COMBINED_SCORE", 30)
    COOLDOWN = ("COOLDOWN", 30)
    RATE_LIMITED = ("RATE_LIMITED", 5)
    ALERTED = ("ALERTED", 120)
    ALERT_FAILED = ("ALERT_FAILED", 10)
    PIPELINE_ERROR = ("PIPELINE_ERROR", 10)

    def __init__(self, code: str, ttl_minutes: int | None) -> None:
        self.code = code
        self.ttl_minutes = ttl_minutes

    @property
    def ttl_seconds(self) -> float | None:
        if self.ttl_minutes is None:
            return None
        return self.ttl_minutes * 60.0

    @classmethod
    def from_code(cls, code: str) -> "RejectionKind":
        for kind in cls:
            if kind.code == code:
                return kind
        raise ValueError(f"Unknown rejection code: {code}")


class RejectionCacheEntry(BaseModel):
    """Cached rejection for one token."""

    reason: str = Field(description="Rejection reason")
    expires_at: float | None = Field(
        default=None, description="Epoch seconds, None = until restart"
    )

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class SeenTokenRecord(BaseModel):
    """Persisted alert history for one token."""

    symbol: str = Field(default="", description="Token symbol")
    first_seen_at: float = Field(description="First time the token was recorded")
    last_alert_at: float | None = Field(default=None, description="Last alert time")
    last_score: int = Field(default=0, description="Score at the last alert")
    last_phase: str = Field(default="", description="Phase at the last alert")
    last_price: float | None = Field(default=None, description="Price at last alert")
    stored_analysis: str | None = Field(
        default=None, description="Serialized analysis payload"
    )
    raw_snapshot: str | None = Field(default=None, description="Serialized snapshot")


class MemeWatchItem(BaseModel):
    """Curated watchlist phrase with optional tags."""

    id: str = Field(description="Item identifier")
    phrase: str = Field(description="Phrase or exact mint address")
    tags: list[str] = Field(default_factory=list, description="Extra keywords")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class MemeMatchResult(BaseModel):
    """Result of matching a token against the watchlist."""

    meme_match: bool = False
    matched_meme: MemeWatchItem | None = None


class SecurityVerdict(BaseModel):
    """Outcome of the external security scanner."""

    safe: bool
    reason: str | None = None


class SocialScore(BaseModel):
    """Social/sentiment score returned by the social scorer."""

    vibe_score: float = Field(default=0.0, description="Social score contribution")
    reasoning: str = Field(default="", description="Short narrative")
    red_flags: list[str] = Field(default_factory=list, description="Warnings")


class AlertDecision(BaseModel):
    """Result of the cooldown gate."""

    allowed: bool
    reason: str | None = None


class CycleSummary(BaseModel):
    """Counts emitted at the end of a scan cycle."""

    fetched: int = 0
    unique: int = 0
    skipped_cached: int = 0
    expired_retries: int = 0
    swept: int = 0
    evaluated: int = 0
    alerts_sent: int = 0
    errors: int = 0
    rejections: dict[str, int] = Field(default_factory=dict)
