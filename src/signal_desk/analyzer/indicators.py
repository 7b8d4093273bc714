"""Technical indicator calculations for Signal Desk.

RSI, support/resistance and trend are plain list arithmetic so every step of
the smoothing is visible and testable; volatility uses pandas returns.
"""

import logging
import math
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..config import IndicatorConfig
from ..errors import InsufficientDataError
from ..models import Candle, IndicatorSnapshot, Trend

logger = logging.getLogger(__name__)


def calc_rsi(closes: Sequence[float], period: int = 14) -> float:
    """Calculate Relative Strength Index with Wilder smoothing.

    The seed averages cover deltas 1..period-1 and are divided by
    ``period - 1``; every later delta is folded in as
    ``avg = (avg * (period - 1) + current) / period``.

    Args:
        closes: Closing prices (oldest to newest)
        period: RSI period (default 14)

    Returns:
        RSI between 0 and 100, or 50 when there are fewer than ``period`` closes
    """
    if len(closes) < period:
        return 50.0

    seed = period - 1
    gains = 0.0
    losses = 0.0
    for i in range(1, period):
        change = closes[i] - closes[i - 1]
        if change > 0:
            gains += change
        else:
            losses += abs(change)

    avg_gain = gains / seed
    avg_loss = losses / seed

    for i in range(period, len(closes)):
        change = closes[i] - closes[i - 1]
        gain = change if change > 0 else 0.0
        loss = -change if change < 0 else 0.0
        avg_gain = (avg_gain * seed + gain) / period
        avg_loss = (avg_loss * seed + loss) / period

    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    return 100 - (100 / (1 + rs))


def calc_price_position(price: float, support: float, resistance: float) -> float:
    """Where price sits between support (0) and resistance (100), clamped."""
    if resistance <= support:
        return 50.0
    position = (price - support) / (resistance - support) * 100
    return max(0.0, min(100.0, position))


def calc_support_resistance(
    highs: Sequence[float],
    lows: Sequence[float],
    current_price: float,
    lookback: int = 20,
) -> Tuple[float, float, float]:
    """Calculate support, resistance and price position.

    Args:
        highs: High prices (oldest to newest)
        lows: Low prices (oldest to newest)
        current_price: Price to place inside the range
        lookback: Number of most recent candles to consider

    Returns:
        Tuple of (support, resistance, price_position)
    """
    if not highs or not lows:
        return 0.0, 0.0, 50.0

    resistance = max(highs[-lookback:])
    support = min(lows[-lookback:])
    return support, resistance, calc_price_position(current_price, support, resistance)


def calc_trend(closes: Sequence[float], threshold: float = 0.5) -> Trend:
    """Classify trend from the 5-close mean against the 10-close mean.

    Args:
        closes: Closing prices (oldest to newest)
        threshold: Percent difference needed to call a direction

    Returns:
        Trend classification, NEUTRAL with fewer than 10 closes
    """
    if len(closes) < 10:
        return Trend.NEUTRAL

    short_avg = sum(closes[-5:]) / 5
    long_avg = sum(closes[-10:]) / 10
    if long_avg == 0:
        return Trend.NEUTRAL

    change = (short_avg - long_avg) / long_avg * 100
    if change > threshold:
        return Trend.BULLISH
    if change < -threshold:
        return Trend.BEARISH
    return Trend.NEUTRAL


def calc_volatility(closes: Sequence[float]) -> float:
    """Annualized volatility of consecutive returns, in percent.

    Population standard deviation of percent returns scaled by sqrt(252).
    Returns 0 with fewer than 10 closes.
    """
    if len(closes) < 10:
        return 0.0

    returns = pd.Series(closes, dtype="float64").pct_change()
    returns = returns.replace([np.inf, -np.inf], np.nan).dropna()
    if returns.empty:
        return 0.0

    volatility = float(returns.std(ddof=0)) * math.sqrt(252) * 100
    if math.isnan(volatility):
        return 0.0
    return volatility


def require_candles(candles: Sequence[Candle], minimum: int) -> None:
    """Raise InsufficientDataError when fewer than ``minimum`` candles are given."""
    if len(candles) < minimum:
        raise InsufficientDataError(required=minimum, actual=len(candles))


class IndicatorEngine:
    """Computes an IndicatorSnapshot from a candle batch.

    Never fails on short input: with fewer than ``min_candles`` candles it
    returns the neutral snapshot flagged ``sufficient_data=False``.
    """

    def __init__(self, config: Optional[IndicatorConfig] = None):
        self.config = config or IndicatorConfig()

    def compute(
        self,
        candles: Sequence[Candle],
        current_price: Optional[float] = None,
    ) -> IndicatorSnapshot:
        """Calculate all indicators for a candle batch.

        Args:
            candles: Candles, oldest first
            current_price: Latest traded price; defaults to the last close

        Returns:
            Fresh IndicatorSnapshot
        """
        try:
            require_candles(candles, self.config.min_candles)
        except InsufficientDataError as e:
            logger.warning(f"⚠️  {e} - using neutral indicators")
            return IndicatorSnapshot.neutral()

        ordered = sorted(candles, key=lambda c: c.timestamp)
        closes: List[float] = [c.close for c in ordered]
        highs: List[float] = [c.high for c in ordered]
        lows: List[float] = [c.low for c in ordered]

        price = current_price if current_price else closes[-1]

        support, resistance, position = calc_support_resistance(
            highs, lows, price, self.config.sr_lookback
        )
        snapshot = IndicatorSnapshot(
            rsi=calc_rsi(closes, self.config.rsi_period),
            trend=calc_trend(closes, self.config.trend_threshold),
            volatility=calc_volatility(closes),
            support=support,
            resistance=resistance,
            price_position=position,
        )

        logger.debug(
            f"📈 Indicators: RSI={snapshot.rsi:.2f}, trend={snapshot.trend.value}, "
            f"vol={snapshot.volatility:.2f}%, position={snapshot.price_position:.1f}%"
        )
        return snapshot
