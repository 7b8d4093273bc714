"""Take-profit / stop-loss placement and position sizing."""

import logging
from typing import Optional

from ..config import TradingConfig
from ..models import Action, TradeParameters

logger = logging.getLogger(__name__)


class TradeParameterCalculator:
    """Computes exit levels, risk-reward and position size for a new trade.

    Position size is chosen so that a stop-loss hit costs about
    ``risk_per_trade`` of the account balance, capped at
    ``max_position_pct`` of the balance.
    """

    def __init__(self, config: Optional[TradingConfig] = None):
        self.config = config or TradingConfig()

    def calculate_levels(self, action: Action, entry_price: float) -> tuple:
        """Calculate (tp1, tp2, sl) for a BUY or SELL entry."""
        cfg = self.config
        if action is Action.BUY:
            return (
                entry_price * (1 + cfg.tp1_pct),
                entry_price * (1 + cfg.tp2_pct),
                entry_price * (1 - cfg.sl_pct),
            )
        if action is Action.SELL:
            return (
                entry_price * (1 - cfg.tp1_pct),
                entry_price * (1 - cfg.tp2_pct),
                entry_price * (1 + cfg.sl_pct),
            )
        raise ValueError(f"Cannot place exit levels for {action.value}")

    def calculate_position_size(self, entry_price: float, stop_loss: float) -> float:
        """Calculate position size in quote currency.

        Args:
            entry_price: Entry price
            stop_loss: Stop loss price

        Returns:
            min(risk_amount / stop_distance_fraction, balance * max_position_pct)
        """
        cfg = self.config
        risk = abs(entry_price - stop_loss)
        if risk == 0:
            raise ValueError("Stop loss must differ from entry price")

        risk_amount = cfg.account_balance * cfg.risk_per_trade
        position_value = risk_amount / (risk / entry_price)
        max_position = cfg.account_balance * cfg.max_position_pct
        return min(position_value, max_position)

    def calculate(self, action: Action, entry_price: float) -> TradeParameters:
        """Calculate full trade parameters.

        Args:
            action: BUY or SELL
            entry_price: Entry price, must be positive

        Returns:
            TradeParameters

        Raises:
            ValueError: For HOLD, a non-positive entry, or a zero stop distance
        """
        if entry_price <= 0:
            raise ValueError(f"Entry price must be positive, got {entry_price}")

        tp1, tp2, sl = self.calculate_levels(action, entry_price)
        position_size = self.calculate_position_size(entry_price, sl)
        risk_reward = abs(tp1 - entry_price) / abs(entry_price - sl)
        position_percent = position_size / self.config.account_balance * 100

        logger.debug(
            f"📐 {action.value} @ {entry_price:.2f}: TP1={tp1:.2f} TP2={tp2:.2f} "
            f"SL={sl:.2f} R:R={risk_reward:.2f} size={position_size:.2f} ({position_percent:.1f}%)"
        )
        return TradeParameters(
            tp1=tp1,
            tp2=tp2,
            sl=sl,
            risk_reward=risk_reward,
            position_size=position_size,
            position_percent=position_percent,
        )
