"""Presentation hooks.

The engine hands read-only projections of its state to a Presenter. A
presenter failing must never affect trading, so the engine calls every hook
through ``safe_present``.
"""

import logging
from typing import Callable

from .models import IndicatorSnapshot, Signal, Statistics, Trade, TradeResult

logger = logging.getLogger(__name__)


class Presenter:
    """No-op presenter. Subclass and override the hooks you need."""

    def show_indicators(self, price: float, indicators: IndicatorSnapshot) -> None:
        pass

    def show_signal(self, signal: Signal) -> None:
        pass

    def show_trade(self, trade: Trade, current_price: float) -> None:
        pass

    def show_statistics(self, statistics: Statistics) -> None:
        pass

    def show_cooldown(self, remaining_seconds: float) -> None:
        pass


class LogPresenter(Presenter):
    """Writes state projections to the log."""

    def __init__(self, name: str = "signal_desk.display"):
        self.log = logging.getLogger(name)

    def show_indicators(self, price: float, indicators: IndicatorSnapshot) -> None:
        if not indicators.sufficient_data:
            self.log.info(f"💵 ${price:,.2f} | indicators pending (insufficient data)")
            return
        self.log.info(
            f"💵 ${price:,.2f} | RSI {indicators.rsi:.2f} | {indicators.trend.value} | "
            f"vol {indicators.volatility:.1f}% | S/R {indicators.support:,.2f}/"
            f"{indicators.resistance:,.2f} ({indicators.price_position:.1f}%)"
        )

    def show_signal(self, signal: Signal) -> None:
        self.log.info(
            f"📣 {signal.action.value} ({signal.confidence * 100:.0f}%) - {signal.rationale}"
        )

    def show_trade(self, trade: Trade, current_price: float) -> None:
        if trade.is_active:
            self.log.info(
                f"🔄 {trade.action.value} @ ${trade.entry_price:,.2f} → ${current_price:,.2f} | "
                f"TP1 ${trade.tp1:,.2f} TP2 ${trade.tp2:,.2f} SL ${trade.sl:,.2f} | "
                f"R:R {trade.risk_reward:.2f}:1 | progress {trade.progress_pct(current_price):.0f}%"
            )
            return
        outcome = "WIN" if trade.result is TradeResult.WIN else "LOSS"
        self.log.info(
            f"🏁 {trade.action.value} {outcome} ({trade.status.value}) | "
            f"exit ${trade.exit_price:,.2f} | P&L ${trade.pnl:+,.2f}"
        )

    def show_statistics(self, statistics: Statistics) -> None:
        self.log.info(
            f"📊 Trades {statistics.total_trades} | win rate {statistics.win_rate:.0f}% | "
            f"P&L ${statistics.total_pnl:+,.2f} | streak {statistics.current_streak} "
            f"(best {statistics.best_streak})"
        )

    def show_cooldown(self, remaining_seconds: float) -> None:
        if remaining_seconds <= 0:
            self.log.info("✅ Ready for next signal")
            return
        minutes, seconds = divmod(int(remaining_seconds), 60)
        self.log.info(f"⏳ Cooldown {minutes}:{seconds:02d}")


def safe_present(hook: Callable, *args) -> None:
    """Call a presenter hook, logging instead of raising on failure."""
    try:
        hook(*args)
    except Exception as e:
        logger.error(f"Presenter error in {getattr(hook, '__name__', hook)}: {e}")
