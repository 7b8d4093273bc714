"""Signal analyzer for Signal Desk.

Turns an indicator snapshot and the current price into a BUY/SELL/HOLD
decision with a confidence score and a readable rationale.
"""

import logging
from typing import Optional, Tuple

from ..config import CONFIDENCE_CEILING, CONFIDENCE_FLOOR, SignalConfig
from ..models import Action, IndicatorSnapshot, Signal, Trend

logger = logging.getLogger(__name__)


class SignalAnalyzer:
    """Rule-based signal generation.

    Rules are evaluated in order and the first match wins:
    1. RSI oversold -> BUY unless the trend is bearish
    2. RSI overbought -> SELL unless the trend is bullish
    3. RSI in the neutral band -> HOLD
    4. Otherwise trade the edges of the support/resistance range

    High volatility then scales confidence down, and the result is clamped
    to [min_confidence, max_confidence] inside the fixed [0.3, 0.95] range.
    """

    def __init__(self, config: Optional[SignalConfig] = None):
        self.config = config or SignalConfig()

    def analyze(self, indicators: IndicatorSnapshot, price: float) -> Signal:
        """Produce a trading decision.

        Args:
            indicators: Current indicator snapshot
            price: Current price

        Returns:
            Signal with action, clamped confidence and rationale
        """
        cfg = self.config
        rsi = indicators.rsi

        if rsi < cfg.rsi_oversold:
            action, confidence, rationale = self._oversold(indicators)
        elif rsi > cfg.rsi_overbought:
            action, confidence, rationale = self._overbought(indicators)
        elif cfg.rsi_neutral_min < rsi < cfg.rsi_neutral_max:
            action = Action.HOLD
            confidence = cfg.neutral_confidence
            rationale = f"RSI neutral ({rsi:.1f}), market balanced"
        else:
            action, confidence, rationale = self._range_edges(indicators)

        if indicators.volatility > cfg.high_volatility:
            confidence *= cfg.volatility_penalty
            rationale += (
                f" | high volatility ({indicators.volatility:.1f}% > "
                f"{cfg.high_volatility:g}%) reduces signal strength"
            )

        floor = max(CONFIDENCE_FLOOR, cfg.min_confidence)
        ceiling = min(CONFIDENCE_CEILING, cfg.max_confidence)
        confidence = max(floor, min(ceiling, confidence))

        logger.debug(f"🧠 Decision: {action.value} ({confidence:.2f}) - {rationale}")
        return Signal(
            action=action,
            confidence=confidence,
            rationale=rationale,
            indicators=indicators,
            price=price,
        )

    def _oversold(self, ind: IndicatorSnapshot) -> Tuple[Action, float, str]:
        cfg = self.config
        if ind.trend is Trend.BEARISH:
            return (
                Action.HOLD,
                cfg.hold_confidence,
                f"RSI oversold ({ind.rsi:.1f}) but trend is bearish, wait for confirmation",
            )

        confidence = cfg.base_confidence + (cfg.rsi_oversold - ind.rsi) / cfg.rsi_confidence_divisor
        rationale = (
            f"RSI oversold ({ind.rsi:.1f} < {cfg.rsi_oversold:g}), "
            f"trend {ind.trend.value}"
        )
        if ind.price_position < cfg.support_bonus_position:
            confidence += cfg.position_bonus
            rationale += f", price near support ({ind.price_position:.1f}%)"
        return Action.BUY, confidence, rationale

    def _overbought(self, ind: IndicatorSnapshot) -> Tuple[Action, float, str]:
        cfg = self.config
        if ind.trend is Trend.BULLISH:
            return (
                Action.HOLD,
                cfg.hold_confidence,
                f"RSI overbought ({ind.rsi:.1f}) but trend is bullish, wait for confirmation",
            )

        confidence = cfg.base_confidence + (ind.rsi - cfg.rsi_overbought) / cfg.rsi_confidence_divisor
        rationale = (
            f"RSI overbought ({ind.rsi:.1f} > {cfg.rsi_overbought:g}), "
            f"trend {ind.trend.value}"
        )
        if ind.price_position > cfg.resistance_bonus_position:
            confidence += cfg.position_bonus
            rationale += f", price near resistance ({ind.price_position:.1f}%)"
        return Action.SELL, confidence, rationale

    def _range_edges(self, ind: IndicatorSnapshot) -> Tuple[Action, float, str]:
        cfg = self.config
        if ind.price_position < cfg.near_support_position and ind.trend is not Trend.BEARISH:
            return (
                Action.BUY,
                cfg.range_confidence,
                f"Price near support ({ind.price_position:.1f}%), RSI moderate ({ind.rsi:.1f})",
            )
        if ind.price_position > cfg.near_resistance_position and ind.trend is not Trend.BULLISH:
            return (
                Action.SELL,
                cfg.range_confidence,
                f"Price near resistance ({ind.price_position:.1f}%), RSI moderate ({ind.rsi:.1f})",
            )
        return (
            Action.HOLD,
            cfg.hold_confidence,
            f"No clear signal, RSI: {ind.rsi:.1f}, position: {ind.price_position:.1f}%",
        )
