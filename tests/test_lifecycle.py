"""Tests for the trade lifecycle state machine."""

from datetime import timedelta

import pytest
from hypothesis import given, settings, strategies as st

from signal_desk.errors import InvalidStateError
from signal_desk.manager.lifecycle import TradeLifecycleManager
from signal_desk.models import (
    Action,
    IndicatorSnapshot,
    Signal,
    StateSnapshot,
    Statistics,
    TradeParameters,
    TradeResult,
    TradeStatus,
    Trend,
)


BUY_PARAMS = TradeParameters(tp1=101.5, tp2=103.0, sl=98.8, risk_reward=1.25, position_size=50.0, position_percent=50.0)
SELL_PARAMS = TradeParameters(tp1=98.5, tp2=97.0, sl=101.2, risk_reward=1.25, position_size=50.0, position_percent=50.0)


def make_signal(action=Action.BUY, price=100.0):
    indicators = IndicatorSnapshot(
        rsi=25.0, trend=Trend.NEUTRAL, volatility=1.0, support=95.0, resistance=105.0, price_position=30.0
    )
    return Signal(action=action, confidence=0.8, rationale="test", indicators=indicators, price=price)


@pytest.fixture
def manager(clock):
    return TradeLifecycleManager(cooldown_seconds=180, history_limit=20, clock=clock)


class TestOpening:
    """Opening trades."""

    def test_open_trade(self, manager, clock):
        trade = manager.open_trade(make_signal(), BUY_PARAMS, "BTC-USDT")

        assert manager.active_trade is trade
        assert manager.history == [trade]
        assert trade.id.startswith("trade_")
        assert trade.status is TradeStatus.ACTIVE
        assert trade.result is TradeResult.NONE
        assert trade.entry_price == 100.0
        assert trade.rsi == 25.0
        assert trade.created_at == clock.now

    def test_second_open_is_rejected(self, manager):
        manager.open_trade(make_signal(), BUY_PARAMS)
        with pytest.raises(InvalidStateError):
            manager.open_trade(make_signal(), BUY_PARAMS)

    def test_hold_is_rejected(self, manager):
        with pytest.raises(ValueError):
            manager.open_trade(make_signal(Action.HOLD), BUY_PARAMS)
        assert manager.active_trade is None

    def test_ids_are_unique(self, manager):
        ids = set()
        for _ in range(5):
            trade = manager.open_trade(make_signal(), BUY_PARAMS)
            manager.resolve(TradeResult.LOSS, 0, 98.0)
            ids.add(trade.id)
        assert len(ids) == 5


class TestResolution:
    """Resolving the active trade against prices."""

    def test_resolve_without_active_trade(self, manager):
        with pytest.raises(InvalidStateError):
            manager.resolve(TradeResult.WIN, 1, 101.5)

    def test_no_trigger_inside_range(self, manager):
        trade = manager.open_trade(make_signal(), BUY_PARAMS)

        assert manager.evaluate(100.5) is None
        assert manager.active_trade is trade
        assert trade.is_active

    def test_tp2_takes_precedence(self, manager):
        """Price beyond both targets resolves at TP2."""
        manager.open_trade(make_signal(), BUY_PARAMS)
        trade = manager.evaluate(103.5)

        assert trade.status is TradeStatus.HIT_TP2
        assert trade.result is TradeResult.WIN
        assert trade.pnl == pytest.approx(1.5)  # (103 - 100) * 0.5 units
        assert trade.exit_price == 103.5
        assert manager.active_trade is None

    def test_tp1_hit(self, manager):
        manager.open_trade(make_signal(), BUY_PARAMS)
        trade = manager.evaluate(102.0)

        assert trade.status is TradeStatus.HIT_TP1
        assert trade.pnl == pytest.approx(0.75)

    def test_stop_loss_hit(self, manager):
        manager.open_trade(make_signal(), BUY_PARAMS)
        trade = manager.evaluate(98.5)

        assert trade.status is TradeStatus.HIT_SL
        assert trade.result is TradeResult.LOSS
        assert trade.pnl == pytest.approx(-0.6)

    def test_sell_trade_mirrors(self, manager):
        manager.open_trade(make_signal(Action.SELL), SELL_PARAMS)
        assert manager.evaluate(99.0) is None

        trade = manager.evaluate(96.0)
        assert trade.status is TradeStatus.HIT_TP2
        assert trade.pnl == pytest.approx(1.5)

    def test_sell_stop_loss(self, manager):
        manager.open_trade(make_signal(Action.SELL), SELL_PARAMS)
        trade = manager.evaluate(101.5)

        assert trade.status is TradeStatus.HIT_SL
        assert trade.pnl == pytest.approx(-0.6)

    def test_resolved_trade_is_final(self, manager):
        manager.open_trade(make_signal(), BUY_PARAMS)
        trade = manager.evaluate(98.0)

        assert manager.evaluate(110.0) is None
        assert trade.status is TradeStatus.HIT_SL
        assert manager.history[0] is trade

    @given(prices=st.lists(st.floats(min_value=90.0, max_value=110.0, allow_nan=False), min_size=1, max_size=50))
    @settings(max_examples=100)
    def test_at_most_one_resolution(self, prices):
        manager = TradeLifecycleManager()
        trade = manager.open_trade(make_signal(), BUY_PARAMS)

        resolutions = [r for r in (manager.evaluate(p) for p in prices) if r is not None]

        assert len(resolutions) <= 1
        if resolutions:
            assert resolutions[0] is trade
            assert trade.status.is_terminal
            assert manager.active_trade is None
        else:
            assert trade.is_active


class TestCooldown:
    """Post-resolution cooldown."""

    def test_cooldown_window(self, manager, clock):
        manager.open_trade(make_signal(), BUY_PARAMS)
        manager.evaluate(102.0)

        clock.advance(179)
        assert manager.is_in_cooldown()
        assert manager.cooldown_remaining() == pytest.approx(1.0)

        clock.advance(2)
        assert not manager.is_in_cooldown()
        assert manager.cooldown_remaining() == 0.0

    def test_no_cooldown_before_first_trade(self, manager):
        assert not manager.is_in_cooldown()

    def test_clear_cooldown(self, manager):
        manager.open_trade(make_signal(), BUY_PARAMS)
        manager.evaluate(98.0)
        assert manager.is_in_cooldown()

        manager.clear_cooldown()
        assert not manager.is_in_cooldown()


class TestStatistics:
    """Aggregate statistics."""

    def test_streak_and_totals(self, manager):
        for result, pnl in [
            (TradeResult.WIN, 1.0),
            (TradeResult.WIN, 2.0),
            (TradeResult.WIN, 3.0),
            (TradeResult.LOSS, -1.0),
        ]:
            manager.record_result(result, pnl)

        stats = manager.statistics
        assert stats.total_trades == 4
        assert stats.winning_trades == 3
        assert stats.losing_trades == 1
        assert stats.current_streak == 0
        assert stats.best_streak == 3
        assert stats.total_pnl == pytest.approx(5.0)
        assert stats.max_win == pytest.approx(3.0)
        assert stats.max_loss == pytest.approx(-1.0)
        assert stats.avg_win == pytest.approx(2.0)
        assert stats.avg_loss == pytest.approx(-1.0)
        assert stats.win_rate == pytest.approx(75.0)

    def test_resolution_updates_statistics(self, manager):
        manager.open_trade(make_signal(), BUY_PARAMS)
        manager.evaluate(103.0)

        assert manager.statistics.total_trades == 1
        assert manager.statistics.total_pnl == pytest.approx(1.5)

    @given(pnls=st.lists(st.floats(min_value=-100.0, max_value=100.0, allow_nan=False), max_size=30))
    @settings(max_examples=100)
    def test_total_pnl_is_sum(self, pnls):
        manager = TradeLifecycleManager()
        for pnl in pnls:
            manager.record_result(TradeResult.WIN if pnl > 0 else TradeResult.LOSS, pnl)

        stats = manager.statistics
        assert stats.total_trades == len(pnls)
        assert stats.total_pnl == pytest.approx(sum(pnls))
        assert stats.best_streak >= stats.current_streak


class TestHistory:
    """Bounded signal history."""

    def test_oldest_entries_are_evicted(self, clock):
        manager = TradeLifecycleManager(history_limit=3, clock=clock)
        trades = []
        for _ in range(5):
            trades.append(manager.open_trade(make_signal(), BUY_PARAMS))
            manager.evaluate(102.0)
            clock.advance(200)

        assert len(manager.history) == 3
        assert manager.history == [trades[4], trades[3], trades[2]]


class TestStateRestore:
    """Snapshot and restore."""

    def test_restore_resumes_active_trade(self, manager, clock):
        trade = manager.open_trade(make_signal(), BUY_PARAMS)
        snapshot = manager.snapshot()

        restored = TradeLifecycleManager(clock=clock)
        restored.restore(snapshot)

        assert restored.active_trade is trade
        assert restored.history[0] is restored.active_trade

    def test_restore_ignores_resolved_trade(self, manager, clock):
        trade = manager.open_trade(make_signal(), BUY_PARAMS)
        manager.evaluate(98.0)

        restored = TradeLifecycleManager(clock=clock)
        restored.restore(StateSnapshot(signal_history=[trade], active_trade=trade))

        assert restored.active_trade is None
        assert restored.history == [trade]

    def test_restore_keeps_cooldown(self, clock):
        manager = TradeLifecycleManager(clock=clock)
        manager.restore(StateSnapshot(statistics=Statistics(total_trades=2), cooldown_end=clock.now + timedelta(seconds=60)))

        assert manager.is_in_cooldown()
        assert manager.statistics.total_trades == 2

    def test_reset(self, manager):
        manager.open_trade(make_signal(), BUY_PARAMS)
        manager.evaluate(98.0)
        manager.reset()

        assert manager.active_trade is None
        assert manager.history == []
        assert manager.statistics.total_trades == 0
        assert not manager.is_in_cooldown()
