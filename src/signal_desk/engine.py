"""Signal Desk Engine - Main Orchestrator.

Drives three independent periodic ticks on one asyncio loop:
- Price tick: refresh the ticker and resolve the active trade
- Signal tick: look for a new trade when idle
- Indicator tick: refresh candles and recompute indicators
"""

import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional

from .analyzer.indicators import IndicatorEngine
from .analyzer.signal_analyzer import SignalAnalyzer
from .config import Config
from .errors import FormatError, NetworkError
from .manager.lifecycle import TradeLifecycleManager
from .manager.trade_params import TradeParameterCalculator
from .models import Action, Candle, IndicatorSnapshot, Signal, Ticker, Trade
from .presentation import Presenter, safe_present

logger = logging.getLogger(__name__)

DATA_ERRORS = (NetworkError, FormatError)


class TradingOrchestrator:
    """Owns all mutable trading state and coordinates the pure components.

    Indicator, analyzer and sizing components receive snapshots and return
    new values; only this class and the lifecycle manager mutate state.
    """

    def __init__(
        self,
        config: Config,
        market,
        store=None,
        presenter: Optional[Presenter] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize orchestrator.

        Args:
            config: Loaded configuration
            market: Market data client (get_ticker / get_candles)
            store: Optional state store (load / save / clear)
            presenter: Receives read-only state projections
            clock: Source of the current time
        """
        self.config = config
        self.market = market
        self.store = store
        self.presenter = presenter or Presenter()
        self.symbol = config.market.symbol

        self.indicator_engine = IndicatorEngine(config.indicators)
        self.analyzer = SignalAnalyzer(config.signal)
        self.param_calculator = TradeParameterCalculator(config.trading)
        self.lifecycle = TradeLifecycleManager(
            cooldown_seconds=config.trading.cooldown_seconds,
            history_limit=config.trading.history_limit,
            clock=clock,
        )

        # State
        self.current_price: float = 0.0
        self.ticker: Optional[Ticker] = None
        self.candles: List[Candle] = []
        self.indicators: IndicatorSnapshot = IndicatorSnapshot.neutral()
        self.last_signal: Optional[Signal] = None

        self._running = False
        self._tasks: Dict[str, asyncio.Task] = {}

    @property
    def is_running(self) -> bool:
        return self._running

    # ==================== Data ====================

    async def _update_ticker(self) -> Ticker:
        ticker = await asyncio.to_thread(self.market.get_ticker, self.symbol)
        self.ticker = ticker
        self.current_price = ticker.last_price
        return ticker

    async def _update_candles(self, limit: int) -> List[Candle]:
        candles = await asyncio.to_thread(
            self.market.get_candles, self.symbol, self.config.market.candle_interval, limit
        )
        self.candles = candles
        return candles

    def _recompute_indicators(self) -> IndicatorSnapshot:
        self.indicators = self.indicator_engine.compute(self.candles, self.current_price)
        safe_present(self.presenter.show_indicators, self.current_price, self.indicators)
        return self.indicators

    async def load_initial_data(self) -> None:
        """Fetch the ticker and the initial candle batch.

        Raises:
            NetworkError, FormatError: If market data is unavailable
        """
        await self._update_ticker()
        await self._update_candles(self.config.market.initial_candle_limit)
        self._recompute_indicators()
        logger.info(f"📊 Initial data loaded: {len(self.candles)} candles, price ${self.current_price:,.2f}")

    def restore_state(self) -> None:
        """Resume history, statistics, cooldown and any active trade from the store."""
        if self.store is None:
            return
        try:
            snapshot = self.store.load()
        except Exception as e:
            logger.error(f"❌ Failed to load stored state: {e}")
            return
        self.lifecycle.restore(snapshot)
        if self.lifecycle.active_trade:
            logger.info(f"🔄 Resumed active trade {self.lifecycle.active_trade.id}")

    def save_state(self) -> None:
        if self.store is None:
            return
        try:
            self.store.save(self.lifecycle.snapshot())
        except Exception as e:
            logger.error(f"❌ Failed to save state: {e}")

    # ==================== Ticks ====================

    async def check_signal(self) -> Optional[Signal]:
        """Signal-check tick.

        Does nothing while in cooldown or while a trade is open. Otherwise
        refreshes the price, recomputes indicators and analyzes; a BUY/SELL
        decision opens a new trade.

        Returns:
            The signal produced, or None if the tick was skipped
        """
        if self.lifecycle.is_in_cooldown():
            remaining = self.lifecycle.cooldown_remaining()
            logger.debug(f"⏳ Cooldown active ({remaining:.0f}s left) - skipping signal check")
            safe_present(self.presenter.show_cooldown, remaining)
            return None
        if self.lifecycle.active_trade is not None:
            logger.debug("🔄 Trade in progress - waiting for resolution")
            return None

        logger.debug("🔍 Analyzing market...")
        try:
            await self._update_ticker()
            if not self.candles:
                await self._update_candles(self.config.market.candle_limit)
        except DATA_ERRORS as e:
            logger.warning(f"⚠️  Signal check skipped: {e}")
            return None

        # Another caller may have opened a trade while we were fetching
        if self.lifecycle.active_trade is not None:
            return None

        self._recompute_indicators()
        if not self.indicators.sufficient_data:
            signal = Signal(
                action=Action.HOLD,
                confidence=self.config.signal.hold_confidence,
                rationale=(
                    f"Insufficient data: {len(self.candles)} candles, "
                    f"need {self.config.indicators.min_candles}"
                ),
                indicators=self.indicators,
                price=self.current_price,
            )
            self.last_signal = signal
            safe_present(self.presenter.show_signal, signal)
            logger.info(f"⏸️  No trade: {signal.rationale}")
            return signal

        signal = self.analyzer.analyze(self.indicators, self.current_price)
        self.last_signal = signal
        safe_present(self.presenter.show_signal, signal)

        if not signal.is_actionable:
            logger.info(f"⏸️  No trade: {signal.rationale}")
            return signal

        params = self.param_calculator.calculate(signal.action, signal.price)
        trade = self.lifecycle.open_trade(signal, params, self.symbol)
        self.save_state()
        safe_present(self.presenter.show_trade, trade, self.current_price)
        logger.info(f"✨ New signal: {trade.action.value} @ ${trade.entry_price:,.2f} ({signal.confidence:.2f})")
        return signal

    async def refresh_price(self) -> Optional[Trade]:
        """Price tick: update the price and resolve the active trade if a level was hit."""
        try:
            await self._update_ticker()
        except DATA_ERRORS as e:
            logger.warning(f"⚠️  Price update skipped: {e}")
            return None
        return self._evaluate_active_trade()

    async def refresh_indicators(self) -> Optional[IndicatorSnapshot]:
        """Indicator tick: fetch a fresh candle batch and recompute."""
        try:
            await self._update_candles(self.config.market.candle_limit)
        except DATA_ERRORS as e:
            logger.warning(f"⚠️  Indicator update skipped: {e}")
            return None
        return self._recompute_indicators()

    def _evaluate_active_trade(self) -> Optional[Trade]:
        active = self.lifecycle.active_trade
        if active is None:
            return None

        resolved = self.lifecycle.evaluate(self.current_price)
        if resolved is None:
            safe_present(self.presenter.show_trade, active, self.current_price)
            return None

        self.save_state()
        safe_present(self.presenter.show_trade, resolved, self.current_price)
        safe_present(self.presenter.show_statistics, self.lifecycle.statistics)
        safe_present(self.presenter.show_cooldown, self.lifecycle.cooldown_remaining())
        return resolved

    # ==================== Manual controls ====================

    async def force_new_signal(self) -> Optional[Signal]:
        """Skip any remaining cooldown and run a signal check now."""
        logger.info("⚡ Manual signal requested - clearing cooldown")
        self.lifecycle.clear_cooldown()
        return await self.check_signal()

    def manual_check_trade(self) -> Optional[Trade]:
        """Evaluate the active trade against the last known price."""
        if self.lifecycle.active_trade is None:
            logger.info("No active trade to check")
            return None
        return self._evaluate_active_trade()

    # ==================== Loops ====================

    async def start(self) -> None:
        """Start the price, signal and indicator loops."""
        if self._running:
            return

        schedule = self.config.schedule
        logger.info("=" * 50)
        logger.info(f"🚀 Signal Desk starting on {self.symbol}")
        logger.info(f"💰 Balance: ${self.config.trading.account_balance:,.2f}")
        logger.info(
            f"⏱️  Intervals: price {schedule.price_interval}s, signal {schedule.signal_interval}s, "
            f"indicators {schedule.indicator_interval}s"
        )
        logger.info("=" * 50)

        self._running = True
        self._tasks = {
            "price": asyncio.create_task(
                self._periodic("price", schedule.price_interval, self.refresh_price)
            ),
            "signal": asyncio.create_task(
                self._periodic("signal", schedule.signal_interval, self.check_signal)
            ),
            "indicators": asyncio.create_task(
                self._periodic("indicators", schedule.indicator_interval, self.refresh_indicators)
            ),
        }

    async def stop(self) -> None:
        """Cancel all loops and wait for them to finish."""
        if not self._running and not self._tasks:
            return

        logger.info("🛑 Stopping Signal Desk...")
        self._running = False
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks = {}
        self.save_state()
        self._log_statistics()

    async def _periodic(self, name: str, interval: float, tick: Callable[[], Awaitable]) -> None:
        logger.debug(f"📡 {name} loop started")
        cycle = 0
        while self._running:
            await asyncio.sleep(interval)
            if not self._running:
                break
            cycle += 1
            try:
                await tick()
            except Exception as e:
                logger.error(f"❌ {name} tick #{cycle} failed: {e}", exc_info=True)

    async def reset(self) -> None:
        """Stop all loops, then clear trading state and stored data."""
        await self.stop()
        self.lifecycle.reset()
        self.current_price = 0.0
        self.ticker = None
        self.candles = []
        self.indicators = IndicatorSnapshot.neutral()
        self.last_signal = None
        if self.store is not None:
            try:
                self.store.clear()
            except Exception as e:
                logger.error(f"❌ Failed to clear store: {e}")
        logger.info("🔄 System reset")

    # ==================== Reporting ====================

    def export_data(self, path: Optional[str] = None) -> int:
        """Write history, statistics and config to a JSON file.

        Returns:
            Number of trades exported; 0 (and no file) when history is empty
        """
        history = self.lifecycle.history
        if not history:
            logger.warning("Nothing to export")
            return 0

        now = datetime.now()
        if path is None:
            path = str(Path(self.config.storage.export_dir) / f"trading_data_{now:%Y-%m-%d}.json")
        Path(path).parent.mkdir(parents=True, exist_ok=True)

        data = {
            "signals": [t.to_dict() for t in history],
            "stats": self.lifecycle.statistics.to_dict(),
            "config": self.config.to_dict(),
            "export_time": now.isoformat(),
        }
        with open(path, "w") as f:
            json.dump(data, f, indent=2)

        logger.info(f"📤 Exported {len(history)} trades to {path}")
        return len(history)

    def get_status(self) -> dict:
        """Read-only projection of the current state."""
        active = self.lifecycle.active_trade
        return {
            "running": self._running,
            "symbol": self.symbol,
            "price": self.current_price,
            "indicators": self.indicators.to_dict(),
            "active_trade": active.to_dict() if active else None,
            "last_signal": self.last_signal.rationale if self.last_signal else None,
            "statistics": self.lifecycle.statistics.to_dict(),
            "cooldown_remaining": self.lifecycle.cooldown_remaining(),
            "history_size": len(self.lifecycle.history),
        }

    def _log_statistics(self) -> None:
        stats = self.lifecycle.statistics
        logger.info("=" * 50)
        logger.info("Trading Statistics")
        logger.info(f"Total Trades: {stats.total_trades}")
        logger.info(f"Winning: {stats.winning_trades}")
        logger.info(f"Losing: {stats.losing_trades}")
        logger.info(f"Win Rate: {stats.win_rate:.1f}%")
        logger.info(f"Total P&L: ${stats.total_pnl:+,.2f}")
        logger.info("=" * 50)
