"""Application settings and configuration management."""

import logging
from pathlib import Path
from typing import Literal

import structlog
import yaml
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

from ..filters.hard import DEFAULT_BLACKLIST

logger = structlog.get_logger(__name__)


class AppSettings(BaseSettings):
    """Application settings with environment variable support."""

    # Environment and mode
    env: Literal["dev", "paper", "prod"] = Field(
        description="Environment: dev, paper, prod"
    )
    log_level: str = Field(default="INFO", description="Log level")

    # Provider endpoints
    dexscreener_base: str = Field(
        default="https://api.dexscreener.com",
        description="DexScreener API base URL",
    )
    birdeye_base: str = Field(
        default="https://public-api.birdeye.so", description="Birdeye API base URL"
    )
    birdeye_api_key: str | None = Field(default=None, description="Birdeye API key")
    goplus_base: str = Field(
        default="https://api.gopluslabs.io/api/v1",
        description="GoPlus security API base URL",
    )
    llm_base_url: str = Field(
        default="https://api.x.ai/v1", description="OpenAI-compatible LLM base URL"
    )
    llm_api_key: str | None = Field(default=None, description="LLM API key")
    llm_model: str = Field(default="grok-3-mini", description="LLM model name")

    # Scheduling
    scan_interval_seconds: float = Field(
        default=30.0, description="Pause between scan cycles"
    )
    batch_size: int = Field(default=2, description="Concurrent token evaluations")
    batch_pause_seconds: float = Field(
        default=1.0, description="Pause after each evaluation per worker slot"
    )
    external_timeout_seconds: float = Field(
        default=15.0, description="Timeout for every external call"
    )

    # Hard filter
    blacklist_words: list[str] = Field(
        default_factory=lambda: list(DEFAULT_BLACKLIST),
        description="Banned words in token name/symbol",
    )
    filter_min_age_minutes: float = Field(default=20, description="Minimum age")
    filter_max_age_minutes: float = Field(default=1440, description="Maximum age")
    filter_min_liquidity_usd: float = Field(default=5000.0, description="Min liquidity")
    filter_min_mc_usd: float = Field(default=10000.0, description="Min market cap")
    filter_max_mc_usd: float = Field(default=500000.0, description="Max market cap")
    max_top10_percent: float = Field(default=50.0, description="Max top-10 share")

    # Scoring
    min_mc_usd: float = Field(default=50000.0, description="Sweet spot lower bound")
    max_mc_usd: float = Field(default=400000.0, description="Sweet spot upper bound")
    min_liquidity_usd: float = Field(default=5000.0, description="Scoring liquidity")
    min_mechanical_score: int = Field(
        default=5, description="Minimum adjusted mechanical score"
    )
    alert_score_threshold: int = Field(
        default=15, description="Minimum combined score to alert"
    )
    social_weight: float = Field(default=1.0, description="Social score multiplier")

    # Cooldown and caching
    max_alerts_per_hour: int = Field(default=12, description="Global alert budget")
    alert_cooldown_minutes: float = Field(
        default=120, description="Per-token cooldown window"
    )
    realert_min_score: int = Field(default=80, description="Score needed to re-alert")
    retry_cache_max_size: int = Field(
        default=1000, description="Maximum cached rejections"
    )

    # Notifications
    telegram_bot_token: str | None = Field(
        default=None, description="Telegram bot token"
    )
    telegram_chat_id: str | None = Field(
        default=None, description="Telegram channel receiving token alerts"
    )
    telegram_admin_ids: list[int] = Field(
        default_factory=list, description="Telegram admin user IDs"
    )

    # Data storage
    database_url: str = Field(
        default="sqlite+aiosqlite:///./signalbot.sqlite",
        description="Database connection URL",
    )

    # Alert mode
    dry_run: bool = Field(default=True, description="Log alerts instead of sending")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog with a level filter."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
    )


def load_settings(profile: str, yaml_path: str) -> AppSettings:
    """Load settings from YAML file and environment variables.

    Args:
        profile: Configuration profile name (dev, paper, prod)
        yaml_path: Path to YAML configuration file

    Returns:
        AppSettings instance with loaded configuration

    Raises:
        FileNotFoundError: If YAML file doesn't exist
        ValidationError: If configuration is invalid
        ValueError: If profile is invalid
    """
    if profile not in ["dev", "paper", "prod"]:
        raise ValueError(
            f"Invalid profile: {profile}. Must be one of: dev, paper, prod"
        )

    yaml_file = Path(yaml_path)
    if not yaml_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

    try:
        with open(yaml_file, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}

        yaml_config["env"] = profile

        # Paper never sends alerts, prod always does; dev follows the YAML
        if profile == "paper":
            yaml_config["dry_run"] = True
        elif profile == "prod":
            yaml_config["dry_run"] = False

        logger.info("Loading configuration", profile=profile, yaml_path=yaml_path)

        settings = AppSettings(**yaml_config)

        logger.info(
            "Configuration loaded successfully",
            profile=profile,
            dry_run=settings.dry_run,
            scan_interval_seconds=settings.scan_interval_seconds,
            max_alerts_per_hour=settings.max_alerts_per_hour,
        )

        return settings

    except yaml.YAMLError as e:
        logger.error("Failed to parse YAML configuration", error=str(e))
        raise ValueError(f"Invalid YAML configuration: {e}") from e
    except ValidationError as e:
        logger.error("Configuration validation failed", error=str(e))
        raise
