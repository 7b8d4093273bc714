"""Analyzer module - indicators and signal decisions."""

from .indicators import (
    IndicatorEngine,
    calc_price_position,
    calc_rsi,
    calc_support_resistance,
    calc_trend,
    calc_volatility,
)
from .signal_analyzer import SignalAnalyzer

__all__ = [
    "IndicatorEngine",
    "calc_price_position",
    "calc_rsi",
    "calc_support_resistance",
    "calc_trend",
    "calc_volatility",
    "SignalAnalyzer",
]
