"""
Signal Desk - BTC/USDT signal engine with simulated trade tracking.

Polls public OKX market data, derives RSI/trend/volatility/support-resistance,
issues BUY/SELL/HOLD signals and tracks each simulated trade until it hits a
take-profit or stop-loss.
"""

__version__ = "1.0.0"

from .models import (
    Action,
    Candle,
    IndicatorSnapshot,
    Signal,
    Statistics,
    Ticker,
    Trade,
    TradeParameters,
    TradeResult,
    TradeStatus,
    Trend,
)
from .engine import TradingOrchestrator

__all__ = [
    "Action",
    "Candle",
    "IndicatorSnapshot",
    "Signal",
    "Statistics",
    "Ticker",
    "Trade",
    "TradeParameters",
    "TradeResult",
    "TradeStatus",
    "Trend",
    "TradingOrchestrator",
]
