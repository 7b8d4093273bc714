"""Manager module - trade sizing and lifecycle."""

from .lifecycle import TradeLifecycleManager
from .trade_params import TradeParameterCalculator

__all__ = ["TradeLifecycleManager", "TradeParameterCalculator"]
