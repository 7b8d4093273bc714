"""Tests for SQLite state persistence."""

import sqlite3
from datetime import datetime, timedelta

import pytest

from signal_desk.models import (
    Action,
    StateSnapshot,
    Statistics,
    Trade,
    TradeResult,
    TradeStatus,
)
from signal_desk.persistence import TradeStore


def make_trade(index, status=TradeStatus.HIT_TP1):
    created = datetime(2024, 1, 1, 12, 0, 0) + timedelta(minutes=index)
    resolved = status is not TradeStatus.ACTIVE
    return Trade(
        id=f"trade_{index}",
        symbol="BTC-USDT",
        action=Action.BUY if index % 2 == 0 else Action.SELL,
        entry_price=100.0 + index,
        tp1=101.5,
        tp2=103.0,
        sl=98.8,
        position_size=50.0,
        position_percent=50.0,
        risk_reward=1.25,
        confidence=0.8,
        rationale=f"trade {index}",
        rsi=25.0,
        created_at=created,
        status=status,
        result=TradeResult.WIN if resolved else TradeResult.NONE,
        pnl=0.75 if resolved else None,
        exit_price=101.6 if resolved else None,
        completed_at=created + timedelta(minutes=5) if resolved else None,
    )


@pytest.fixture
def store(tmp_path):
    return TradeStore(str(tmp_path / "state" / "signal_desk.db"), history_limit=20)


class TestTradeStore:
    """Save and load round trips."""

    def test_empty_store(self, store):
        snapshot = store.load()

        assert snapshot.signal_history == []
        assert snapshot.active_trade is None
        assert snapshot.cooldown_end is None
        assert snapshot.statistics == Statistics()

    def test_save_and_load(self, store):
        active = make_trade(2, TradeStatus.ACTIVE)
        history = [active, make_trade(1), make_trade(0)]
        stats = Statistics(total_trades=2, winning_trades=2, total_pnl=1.5, current_streak=2, best_streak=2)
        cooldown_end = datetime(2024, 1, 1, 12, 10, 0)

        assert store.save(StateSnapshot(history, stats, cooldown_end, active)) is True
        loaded = store.load()

        assert [t.id for t in loaded.signal_history] == ["trade_2", "trade_1", "trade_0"]
        assert loaded.signal_history[1] == history[1]
        assert loaded.statistics == stats
        assert loaded.cooldown_end == cooldown_end
        assert loaded.active_trade is loaded.signal_history[0]
        assert loaded.active_trade.status is TradeStatus.ACTIVE

    def test_save_replaces_previous_state(self, store):
        store.save(StateSnapshot([make_trade(0)], Statistics(total_trades=1)))
        store.save(StateSnapshot([make_trade(1)], Statistics(total_trades=2)))

        loaded = store.load()
        assert [t.id for t in loaded.signal_history] == ["trade_1"]
        assert loaded.statistics.total_trades == 2
        assert loaded.active_trade is None

    def test_history_limit(self, tmp_path):
        store = TradeStore(str(tmp_path / "small.db"), history_limit=3)
        trades = [make_trade(i) for i in reversed(range(5))]

        store.save(StateSnapshot(trades))

        assert [t.id for t in store.load().signal_history] == ["trade_4", "trade_3", "trade_2"]

    def test_clear(self, store):
        store.save(StateSnapshot([make_trade(0)], Statistics(total_trades=1)))
        store.clear()

        loaded = store.load()
        assert loaded.signal_history == []
        assert loaded.statistics.total_trades == 0

    def test_corrupt_state_starts_fresh(self, store):
        store.save(StateSnapshot([make_trade(0)], Statistics(total_trades=1)))
        with sqlite3.connect(store.db_path) as conn:
            conn.execute("UPDATE state SET value = '{not json' WHERE key = 'statistics'")
            conn.commit()

        loaded = store.load()
        assert loaded.signal_history == []
        assert loaded.statistics == Statistics()

    def test_unwritable_database_is_not_fatal(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        store = TradeStore(str(blocker / "signal_desk.db"))

        assert store.save(StateSnapshot([make_trade(0)])) is False
        assert store.load().signal_history == []
