"""Trade lifecycle manager for Signal Desk.

Owns the single active trade, resolves it against live prices, keeps the
bounded signal history and the aggregate statistics, and runs the
post-resolution cooldown.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from ..errors import InvalidStateError
from ..models import (
    Action,
    CooldownWindow,
    Signal,
    StateSnapshot,
    Statistics,
    Trade,
    TradeParameters,
    TradeResult,
    TradeStatus,
)

logger = logging.getLogger(__name__)


class TradeLifecycleManager:
    """Single-position trade state machine.

    States: active -> hit_tp1 | hit_tp2 | hit_sl. At most one trade is
    active at any time; resolved trades never change again.
    """

    def __init__(
        self,
        cooldown_seconds: int = 180,
        history_limit: int = 20,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize lifecycle manager.

        Args:
            cooldown_seconds: Idle period after each resolution
            history_limit: Number of most recent trades kept in history
            clock: Source of the current time
        """
        self.cooldown_seconds = cooldown_seconds
        self.history_limit = history_limit
        self._clock = clock

        self.active_trade: Optional[Trade] = None
        self.history: List[Trade] = []  # Most recent first
        self.statistics = Statistics()
        self.cooldown = CooldownWindow()

    # ==================== Opening ====================

    def open_trade(self, signal: Signal, params: TradeParameters, symbol: str = "") -> Trade:
        """Create the active trade from an approved signal.

        Raises:
            InvalidStateError: If a trade is already active
            ValueError: If the signal is HOLD
        """
        if self.active_trade is not None:
            raise InvalidStateError(
                f"Trade {self.active_trade.id} is still active; cannot open another"
            )
        if signal.action is Action.HOLD:
            raise ValueError("HOLD signals do not open trades")

        now = self._clock()
        trade = Trade(
            id=f"trade_{int(now.timestamp() * 1000)}_{uuid.uuid4().hex[:9]}",
            symbol=symbol,
            action=signal.action,
            entry_price=signal.price,
            tp1=params.tp1,
            tp2=params.tp2,
            sl=params.sl,
            position_size=params.position_size,
            position_percent=params.position_percent,
            risk_reward=params.risk_reward,
            confidence=signal.confidence,
            rationale=signal.rationale,
            rsi=signal.indicators.rsi,
            created_at=now,
        )
        self.active_trade = trade
        self._add_to_history(trade)

        logger.info(
            f"🎯 Opened {trade.action.value} {symbol} @ {trade.entry_price:.2f} | "
            f"TP1 {trade.tp1:.2f} TP2 {trade.tp2:.2f} SL {trade.sl:.2f} | "
            f"size {trade.position_size:.2f} ({trade.position_percent:.1f}%)"
        )
        return trade

    def _add_to_history(self, trade: Trade) -> None:
        self.history.insert(0, trade)
        del self.history[self.history_limit:]

    # ==================== Resolution ====================

    def evaluate(self, current_price: float) -> Optional[Trade]:
        """Check the active trade against the current price.

        TP2 is checked before TP1 so a price beyond TP2 reports the better
        outcome; the stop loss is checked last.

        Returns:
            The resolved trade, or None if nothing triggered
        """
        trade = self.active_trade
        if trade is None or not current_price:
            return None

        if trade.action is Action.BUY:
            if current_price >= trade.tp2:
                return self.resolve(TradeResult.WIN, 2, current_price)
            if current_price >= trade.tp1:
                return self.resolve(TradeResult.WIN, 1, current_price)
            if current_price <= trade.sl:
                return self.resolve(TradeResult.LOSS, 0, current_price)
        else:
            if current_price <= trade.tp2:
                return self.resolve(TradeResult.WIN, 2, current_price)
            if current_price <= trade.tp1:
                return self.resolve(TradeResult.WIN, 1, current_price)
            if current_price >= trade.sl:
                return self.resolve(TradeResult.LOSS, 0, current_price)

        logger.debug(
            f"   📍 {trade.action.value} @ {trade.entry_price:.2f} → {current_price:.2f} "
            f"| to TP1 {trade.distance_to_tp1_pct(current_price):+.2f}% "
            f"| progress {trade.progress_pct(current_price):.0f}%"
        )
        return None

    def resolve(self, result: TradeResult, level: int, exit_price: float) -> Trade:
        """Close the active trade.

        P&L is realized at the triggered level (TP1, TP2 or SL) on a
        position of ``position_size / entry_price`` units.

        Args:
            result: WIN or LOSS
            level: 1 or 2 for wins, ignored for losses
            exit_price: Observed price that triggered the resolution

        Raises:
            InvalidStateError: If there is no active trade
            ValueError: For an unknown result or TP level
        """
        trade = self.active_trade
        if trade is None:
            raise InvalidStateError("No active trade to resolve")

        if result is TradeResult.WIN:
            if level == 1:
                level_price, status = trade.tp1, TradeStatus.HIT_TP1
            elif level == 2:
                level_price, status = trade.tp2, TradeStatus.HIT_TP2
            else:
                raise ValueError(f"Unknown take profit level: {level}")
        elif result is TradeResult.LOSS:
            level_price, status = trade.sl, TradeStatus.HIT_SL
        else:
            raise ValueError("Trade must resolve as a win or a loss")

        units = trade.position_size / trade.entry_price
        if trade.action is Action.BUY:
            pnl = (level_price - trade.entry_price) * units
        else:
            pnl = (trade.entry_price - level_price) * units

        now = self._clock()
        trade.status = status
        trade.result = result
        trade.pnl = pnl
        trade.exit_price = exit_price
        trade.completed_at = now

        self.record_result(result, pnl)
        self.active_trade = None
        self.cooldown.end_time = now + timedelta(seconds=self.cooldown_seconds)

        if result is TradeResult.WIN:
            logger.info(f"💰 TP{level} hit @ {exit_price:.2f} | P&L ${pnl:+.2f}")
        else:
            logger.warning(f"🛑 Stop loss hit @ {exit_price:.2f} | P&L ${pnl:+.2f}")
        logger.info(f"⏳ Cooldown for {self.cooldown_seconds}s")
        return trade

    def record_result(self, result: TradeResult, pnl: float) -> None:
        """Fold one resolved trade into the aggregate statistics."""
        stats = self.statistics
        stats.total_trades += 1

        if result is TradeResult.WIN:
            stats.winning_trades += 1
            stats.current_streak += 1
            stats.best_streak = max(stats.best_streak, stats.current_streak)
            stats.max_win = max(stats.max_win, pnl)
            wins = stats.winning_trades
            stats.avg_win = (stats.avg_win * (wins - 1) + pnl) / wins
        else:
            stats.current_streak = 0
            stats.max_loss = min(stats.max_loss, pnl)
            losses = stats.losing_trades
            stats.avg_loss = (stats.avg_loss * (losses - 1) + pnl) / losses

        stats.total_pnl += pnl

    # ==================== Cooldown ====================

    def is_in_cooldown(self) -> bool:
        return self.cooldown.is_active(self._clock())

    def cooldown_remaining(self) -> float:
        """Seconds until a new trade may open."""
        return self.cooldown.remaining(self._clock())

    def clear_cooldown(self) -> None:
        """Manual override: end the cooldown immediately."""
        self.cooldown.clear()

    # ==================== State ====================

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            signal_history=list(self.history),
            statistics=self.statistics,
            cooldown_end=self.cooldown.end_time,
            active_trade=self.active_trade,
        )

    def restore(self, snapshot: StateSnapshot) -> None:
        """Load persisted state. A stored trade is only resumed if still active."""
        self.history = list(snapshot.signal_history)[: self.history_limit]
        self.statistics = snapshot.statistics
        self.cooldown = CooldownWindow(snapshot.cooldown_end)

        trade = snapshot.active_trade
        if trade is not None and trade.is_active:
            # Keep history and the active slot pointing at the same object
            for i, entry in enumerate(self.history):
                if entry.id == trade.id:
                    self.history[i] = trade
                    break
            self.active_trade = trade
        else:
            self.active_trade = None

    def reset(self) -> None:
        self.active_trade = None
        self.history = []
        self.statistics = Statistics()
        self.cooldown = CooldownWindow()
