"""Persistence storage using SQLite."""

import json
import uuid
from datetime import UTC, datetime
from typing import Any

import aiosqlite
import structlog

from ..core.interfaces import Persistence
from ..core.types import MemeWatchItem, SeenTokenRecord

logger = structlog.get_logger(__name__)


class SQLiteStorage(Persistence):
    """SQLite-based storage implementation."""

    def __init__(self, db_path: str = "signalbot.sqlite") -> None:
        """Initialize SQLite storage.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        logger.info("SQLite storage initialized", db_path=db_path)

    @classmethod
    def from_url(cls, database_url: str) -> "SQLiteStorage":
        """Create storage from a ``sqlite+aiosqlite:///`` URL."""
        return cls(db_path=database_url.replace("sqlite+aiosqlite:///", ""))

    async def initialize(self) -> None:
        """Initialize database tables."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS seen_tokens (
                    mint TEXT PRIMARY KEY,
                    symbol TEXT NOT NULL DEFAULT '',
                    first_seen_at REAL NOT NULL,
                    last_alert_at REAL,
                    last_score INTEGER NOT NULL DEFAULT 0,
                    last_phase TEXT NOT NULL DEFAULT '',
                    last_price REAL,
                    stored_analysis TEXT,
                    raw_snapshot TEXT
                )
            """)

            await db.execute("""
                CREATE TABLE IF NOT EXISTS token_performance (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    mint TEXT NOT NULL,
                    symbol TEXT NOT NULL,
                    alert_mc REAL NOT NULL,
                    ath_mc REAL NOT NULL,
                    current_mc REAL NOT NULL,
                    entry_price REAL NOT NULL,
                    score INTEGER NOT NULL,
                    phase TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'TRACKING',
                    alert_ts REAL NOT NULL,
                    updated_ts REAL NOT NULL
                )
            """)

            await db.execute("""
                CREATE INDEX IF NOT EXISTS idx_performance_mint
                ON token_performance(mint)
            """)

            await db.execute("""
                CREATE TABLE IF NOT EXISTS watchlist (
                    id TEXT PRIMARY KEY,
                    phrase TEXT UNIQUE NOT NULL,
                    tags TEXT NOT NULL DEFAULT '[]',
                    created_at TEXT NOT NULL
                )
            """)

            await db.commit()

        logger.info("Database tables initialized")

    # Seen tokens

    async def get_seen_token(self, mint: str) -> SeenTokenRecord | None:
        """Load the seen-token record for a mint.

        Args:
            mint: Token mint address

        Returns:
            Record or None if the token was never recorded
        """
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                """
                SELECT symbol, first_seen_at, last_alert_at, last_score, last_phase,
                       last_price, stored_analysis, raw_snapshot
                FROM seen_tokens WHERE mint = ?
            """,
                (mint,),
            ) as cursor:
                row = await cursor.fetchone()

        if row is None:
            return None

        return SeenTokenRecord(**dict(row))

    async def save_seen_token(self, mint: str, record: SeenTokenRecord) -> None:
        """Upsert a seen-token record.

        ``first_seen_at`` is only written on insert. Alert fields are always
        overwritten; the analysis payload and snapshot are kept when the new
        record carries none.

        Args:
            mint: Token mint address
            record: Record to store
        """
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                INSERT INTO seen_tokens (
                    mint, symbol, first_seen_at, last_alert_at, last_score,
                    last_phase, last_price, stored_analysis, raw_snapshot
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(mint) DO UPDATE SET
                    symbol = excluded.symbol,
                    first_seen_at = MIN(seen_tokens.first_seen_at, excluded.first_seen_at),
                    last_alert_at = excluded.last_alert_at,
                    last_score = excluded.last_score,
                    last_phase = excluded.last_phase,
                    last_price = excluded.last_price,
                    stored_analysis = COALESCE(
                        excluded.stored_analysis, seen_tokens.stored_analysis
                    ),
                    raw_snapshot = COALESCE(excluded.raw_snapshot, seen_tokens.raw_snapshot)
            """,
                (
                    mint,
                    record.symbol,
                    record.first_seen_at,
                    record.last_alert_at,
                    record.last_score,
                    record.last_phase,
                    record.last_price,
                    record.stored_analysis,
                    record.raw_snapshot,
                ),
            )

            await db.commit()

        logger.debug(
            "Seen token saved",
            token_mint=mint,
            last_score=record.last_score,
            last_phase=record.last_phase,
        )

    # Performance tracking

    async def record_performance(
        self,
        mint: str,
        symbol: str,
        alert_mc: float,
        entry_price: float,
        score: int,
        phase: str,
        ts: float | None = None,
    ) -> int:
        """Record a performance-tracking row for an alert.

        Args:
            mint: Token mint address
            symbol: Token symbol
            alert_mc: Market cap at alert time
            entry_price: Price at alert time
            score: Combined score at alert time
            phase: Phase at alert time
            ts: Alert timestamp (defaults to current time)

        Returns:
            Row ID
        """
        if ts is None:
            ts = datetime.now().timestamp()

        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                INSERT INTO token_performance (
                    mint, symbol, alert_mc, ath_mc, current_mc, entry_price,
                    score, phase, status, alert_ts, updated_ts
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, 'TRACKING', ?, ?)
            """,
                (mint, symbol, alert_mc, alert_mc, alert_mc, entry_price, score, phase, ts, ts),
            )

            row_id = cursor.lastrowid
            await db.commit()

        logger.debug("Performance row recorded", row_id=row_id, token_mint=mint)
        return row_id

    async def load_performance(self, limit: int = 100) -> list[dict[str, Any]]:
        """Load the most recent performance rows.

        Args:
            limit: Maximum number of rows

        Returns:
            List of row dictionaries, newest first
        """
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row

            async with db.execute(
                """
                SELECT * FROM token_performance
                ORDER BY alert_ts DESC, id DESC
                LIMIT ?
            """,
                (limit,),
            ) as cursor:
                rows = await cursor.fetchall()

        return [dict(row) for row in rows]

    # Watchlist

    async def load_watchlist(self) -> list[MemeWatchItem]:
        """Load all watchlist items."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row

            async with db.execute("""
                SELECT id, phrase, tags, created_at FROM watchlist
                ORDER BY created_at
            """) as cursor:
                rows = await cursor.fetchall()

        items = []
        for row in rows:
            try:
                tags = json.loads(row["tags"])
            except json.JSONDecodeError as e:
                logger.error("Failed to decode watchlist tags", id=row["id"], error=str(e))
                tags = []
            items.append(
                MemeWatchItem(
                    id=row["id"],
                    phrase=row["phrase"],
                    tags=tags,
                    created_at=datetime.fromisoformat(row["created_at"]),
                )
            )

        logger.debug("Loaded watchlist", count=len(items))
        return items

    async def add_watch_item(self, phrase: str, tags: list[str] | None = None) -> MemeWatchItem:
        """Add a watchlist phrase, returning the existing item on duplicates.

        Args:
            phrase: Phrase or mint address
            tags: Extra keywords

        Returns:
            Stored watchlist item
        """
        # Mint addresses are case sensitive, so the phrase is stored as given
        normalized = phrase.strip()
        for item in await self.load_watchlist():
            if item.phrase.lower() == normalized.lower():
                return item

        item = MemeWatchItem(
            id=uuid.uuid4().hex[:9],
            phrase=normalized,
            tags=[tag.lower() for tag in tags or []],
            created_at=datetime.now(UTC),
        )

        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                INSERT INTO watchlist (id, phrase, tags, created_at)
                VALUES (?, ?, ?, ?)
            """,
                (item.id, item.phrase, json.dumps(item.tags), item.created_at.isoformat()),
            )
            await db.commit()

        logger.info("Watchlist item added", phrase=item.phrase, tags=item.tags)
        return item

    async def remove_watch_item(self, id_or_phrase: str) -> bool:
        """Remove a watchlist item by id or phrase.

        Returns:
            True if an item was removed
        """
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "DELETE FROM watchlist WHERE id = ? OR phrase = ? COLLATE NOCASE",
                (id_or_phrase, id_or_phrase.strip()),
            )
            removed = cursor.rowcount > 0
            await db.commit()

        logger.info("Watchlist item removed", key=id_or_phrase, removed=removed)
        return removed

    async def close(self) -> None:
        """Close storage (cleanup if needed)."""
        logger.info("Storage closed")

    async def __aenter__(self):
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
