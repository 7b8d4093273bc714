"""SQLite persistence for signal history and system state.

Storage is best-effort: failures are logged and never propagate into the
trading core.
"""

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ..models import StateSnapshot, Statistics, Trade

logger = logging.getLogger(__name__)


class TradeStore:
    """Stores the bounded trade history, statistics, cooldown and active trade."""

    def __init__(self, db_path: str = "data/signal_desk.db", history_limit: int = 20):
        """Initialize trade store.

        Args:
            db_path: Path to SQLite database file
            history_limit: Maximum number of trades kept
        """
        self.db_path = db_path
        self.history_limit = history_limit
        self._ensure_database()

    def _ensure_database(self) -> None:
        """Create database and tables if they don't exist."""
        try:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            with sqlite3.connect(self.db_path) as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS trades (
                        id TEXT PRIMARY KEY,
                        symbol TEXT NOT NULL,
                        action TEXT NOT NULL,
                        entry_price REAL NOT NULL,
                        tp1 REAL NOT NULL,
                        tp2 REAL NOT NULL,
                        sl REAL NOT NULL,
                        position_size REAL NOT NULL,
                        position_percent REAL NOT NULL,
                        risk_reward REAL NOT NULL,
                        confidence REAL NOT NULL,
                        rationale TEXT NOT NULL,
                        rsi REAL NOT NULL,
                        created_at TEXT NOT NULL,
                        status TEXT NOT NULL,
                        result TEXT NOT NULL,
                        pnl REAL,
                        exit_price REAL,
                        completed_at TEXT
                    )
                """)
                conn.execute("""
                    CREATE INDEX IF NOT EXISTS idx_created_at
                    ON trades(created_at)
                """)
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS state (
                        key TEXT PRIMARY KEY,
                        value TEXT
                    )
                """)
                conn.commit()
        except (sqlite3.Error, OSError) as e:
            logger.error(f"❌ Could not initialise store at {self.db_path}: {e}")

    def save(self, snapshot: StateSnapshot) -> bool:
        """Persist a state snapshot, replacing what was stored before.

        Returns:
            True on success, False if the write failed
        """
        trades = list(snapshot.signal_history)[: self.history_limit]
        active = snapshot.active_trade
        if active is not None and all(t.id != active.id for t in trades):
            trades.append(active)

        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute("DELETE FROM trades")
                conn.executemany("""
                    INSERT INTO trades (
                        id, symbol, action, entry_price, tp1, tp2, sl,
                        position_size, position_percent, risk_reward, confidence,
                        rationale, rsi, created_at, status, result, pnl,
                        exit_price, completed_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, [self._trade_row(t) for t in trades])

                state = {
                    "statistics": json.dumps(snapshot.statistics.to_dict()),
                    "cooldown_end": snapshot.cooldown_end.isoformat() if snapshot.cooldown_end else None,
                    "active_trade_id": active.id if active is not None else None,
                    "last_update": datetime.now().isoformat(),
                }
                conn.executemany(
                    "INSERT OR REPLACE INTO state (key, value) VALUES (?, ?)",
                    list(state.items()),
                )
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"❌ Failed to save state: {e}")
            return False

        logger.debug(f"💾 Saved {len(trades)} trades")
        return True

    def load(self) -> StateSnapshot:
        """Load the stored snapshot; an empty snapshot if nothing is stored or reading fails."""
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.row_factory = sqlite3.Row
                rows = conn.execute(
                    "SELECT * FROM trades ORDER BY created_at DESC, rowid ASC"
                ).fetchall()
                state = {
                    row["key"]: row["value"]
                    for row in conn.execute("SELECT key, value FROM state").fetchall()
                }
        except sqlite3.Error as e:
            logger.error(f"❌ Failed to load state: {e}")
            return StateSnapshot()

        try:
            trades = [self._row_to_trade(row) for row in rows]
            statistics = (
                Statistics.from_dict(json.loads(state["statistics"]))
                if state.get("statistics") else Statistics()
            )
            cooldown_end = (
                datetime.fromisoformat(state["cooldown_end"])
                if state.get("cooldown_end") else None
            )
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"❌ Stored state is corrupt, starting fresh: {e}")
            return StateSnapshot()

        active_id = state.get("active_trade_id")
        active = self._find(trades, active_id) if active_id else None
        history = trades[: self.history_limit]

        logger.info(f"📂 Loaded {len(history)} trades from {self.db_path}")
        return StateSnapshot(
            signal_history=history,
            statistics=statistics,
            cooldown_end=cooldown_end,
            active_trade=active,
        )

    def clear(self) -> None:
        """Delete all stored trades and state."""
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute("DELETE FROM trades")
                conn.execute("DELETE FROM state")
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"❌ Failed to clear store: {e}")

    @staticmethod
    def _find(trades: List[Trade], trade_id: str) -> Optional[Trade]:
        for trade in trades:
            if trade.id == trade_id:
                return trade
        return None

    @staticmethod
    def _trade_row(trade: Trade) -> tuple:
        return (
            trade.id,
            trade.symbol,
            trade.action.value,
            trade.entry_price,
            trade.tp1,
            trade.tp2,
            trade.sl,
            trade.position_size,
            trade.position_percent,
            trade.risk_reward,
            trade.confidence,
            trade.rationale,
            trade.rsi,
            trade.created_at.isoformat(),
            trade.status.value,
            trade.result.value,
            trade.pnl,
            trade.exit_price,
            trade.completed_at.isoformat() if trade.completed_at else None,
        )

    @staticmethod
    def _row_to_trade(row: sqlite3.Row) -> Trade:
        return Trade.from_dict(dict(row))
