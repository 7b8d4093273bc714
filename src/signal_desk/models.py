"""Core data models for Signal Desk."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class Trend(Enum):
    """Short-vs-long moving average trend classification."""
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class Action(Enum):
    """Signal action."""
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class TradeStatus(Enum):
    """Trade lifecycle state. Every state except ACTIVE is terminal."""
    ACTIVE = "active"
    HIT_TP1 = "hit_tp1"
    HIT_TP2 = "hit_tp2"
    HIT_SL = "hit_sl"

    @property
    def is_terminal(self) -> bool:
        return self is not TradeStatus.ACTIVE


class TradeResult(Enum):
    """Outcome of a trade. NONE while the trade is still active."""
    NONE = "none"
    WIN = "win"
    LOSS = "loss"


@dataclass(frozen=True)
class Candle:
    """OHLCV candle."""

    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float

    @classmethod
    def from_list(cls, data: List) -> "Candle":
        """Create from exchange row format [timestamp, o, h, l, c, v, ...]."""
        return cls(
            timestamp=int(data[0]),
            open=float(data[1]),
            high=float(data[2]),
            low=float(data[3]),
            close=float(data[4]),
            volume=float(data[5]),
        )


@dataclass
class Ticker:
    """Market ticker data."""

    symbol: str
    last_price: float
    high_24h: float
    low_24h: float
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Indicator values computed from one candle batch."""

    rsi: float
    trend: Trend
    volatility: float  # Annualized, percent
    support: float
    resistance: float
    price_position: float  # 0-100 between support and resistance
    sufficient_data: bool = True

    @classmethod
    def neutral(cls) -> "IndicatorSnapshot":
        """Degenerate snapshot used when there are not enough candles."""
        return cls(
            rsi=50.0,
            trend=Trend.NEUTRAL,
            volatility=0.0,
            support=0.0,
            resistance=0.0,
            price_position=50.0,
            sufficient_data=False,
        )

    def to_dict(self) -> dict:
        return {
            "rsi": self.rsi,
            "trend": self.trend.value,
            "volatility": self.volatility,
            "support": self.support,
            "resistance": self.resistance,
            "price_position": self.price_position,
            "sufficient_data": self.sufficient_data,
        }


@dataclass
class Signal:
    """Trading decision produced by the analyzer."""

    action: Action
    confidence: float  # 0.3-0.95
    rationale: str
    indicators: IndicatorSnapshot
    price: float
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def is_actionable(self) -> bool:
        return self.action is not Action.HOLD


@dataclass(frozen=True)
class TradeParameters:
    """Take-profit, stop-loss and sizing for a prospective trade."""

    tp1: float
    tp2: float
    sl: float
    risk_reward: float
    position_size: float  # Quote currency
    position_percent: float  # Of account balance


@dataclass
class Trade:
    """A single signal tracked from creation to resolution."""

    id: str
    symbol: str
    action: Action
    entry_price: float
    tp1: float
    tp2: float
    sl: float
    position_size: float
    position_percent: float
    risk_reward: float
    confidence: float
    rationale: str
    rsi: float = 50.0
    created_at: datetime = field(default_factory=datetime.now)
    status: TradeStatus = TradeStatus.ACTIVE
    result: TradeResult = TradeResult.NONE
    pnl: Optional[float] = None
    exit_price: Optional[float] = None
    completed_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status is TradeStatus.ACTIVE

    def distance_to_tp1_pct(self, current_price: float) -> float:
        """Percent move from entry in the trade's favour (negative when against)."""
        if self.entry_price == 0:
            return 0.0
        if self.action is Action.BUY:
            return (current_price - self.entry_price) / self.entry_price * 100
        return (self.entry_price - current_price) / self.entry_price * 100

    def distance_to_sl_pct(self, current_price: float) -> float:
        """Percent move from entry toward the stop loss."""
        return -self.distance_to_tp1_pct(current_price)

    def progress_pct(self, current_price: float) -> float:
        """Position of current price between SL (0) and TP1 (100), clamped."""
        total_range = abs(self.tp1 - self.sl)
        if total_range == 0:
            return 0.0
        progress = abs(current_price - self.sl) / total_range * 100
        return max(0.0, min(100.0, progress))

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "symbol": self.symbol,
            "action": self.action.value,
            "entry_price": self.entry_price,
            "tp1": self.tp1,
            "tp2": self.tp2,
            "sl": self.sl,
            "position_size": self.position_size,
            "position_percent": self.position_percent,
            "risk_reward": self.risk_reward,
            "confidence": self.confidence,
            "rationale": self.rationale,
            "rsi": self.rsi,
            "created_at": self.created_at.isoformat(),
            "status": self.status.value,
            "result": self.result.value,
            "pnl": self.pnl,
            "exit_price": self.exit_price,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Trade":
        """Create from dictionary."""
        completed_at = data.get("completed_at")
        return cls(
            id=data["id"],
            symbol=data.get("symbol", ""),
            action=Action(data["action"]),
            entry_price=float(data["entry_price"]),
            tp1=float(data["tp1"]),
            tp2=float(data["tp2"]),
            sl=float(data["sl"]),
            position_size=float(data["position_size"]),
            position_percent=float(data.get("position_percent", 0.0)),
            risk_reward=float(data.get("risk_reward", 0.0)),
            confidence=float(data.get("confidence", 0.0)),
            rationale=data.get("rationale", ""),
            rsi=float(data.get("rsi", 50.0)),
            created_at=datetime.fromisoformat(data["created_at"]),
            status=TradeStatus(data.get("status", "active")),
            result=TradeResult(data.get("result", "none")),
            pnl=data.get("pnl"),
            exit_price=data.get("exit_price"),
            completed_at=datetime.fromisoformat(completed_at) if completed_at else None,
        )


@dataclass
class Statistics:
    """Aggregate performance over resolved trades."""

    total_trades: int = 0
    winning_trades: int = 0
    total_pnl: float = 0.0
    current_streak: int = 0
    best_streak: int = 0
    max_win: float = 0.0
    max_loss: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0

    @property
    def losing_trades(self) -> int:
        return self.total_trades - self.winning_trades

    @property
    def win_rate(self) -> float:
        """Win rate as percentage."""
        if self.total_trades == 0:
            return 0.0
        return self.winning_trades / self.total_trades * 100

    def to_dict(self) -> dict:
        return {
            "total_trades": self.total_trades,
            "winning_trades": self.winning_trades,
            "total_pnl": self.total_pnl,
            "current_streak": self.current_streak,
            "best_streak": self.best_streak,
            "max_win": self.max_win,
            "max_loss": self.max_loss,
            "avg_win": self.avg_win,
            "avg_loss": self.avg_loss,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Statistics":
        return cls(
            total_trades=int(data.get("total_trades", 0)),
            winning_trades=int(data.get("winning_trades", 0)),
            total_pnl=float(data.get("total_pnl", 0.0)),
            current_streak=int(data.get("current_streak", 0)),
            best_streak=int(data.get("best_streak", 0)),
            max_win=float(data.get("max_win", 0.0)),
            max_loss=float(data.get("max_loss", 0.0)),
            avg_win=float(data.get("avg_win", 0.0)),
            avg_loss=float(data.get("avg_loss", 0.0)),
        )


@dataclass
class CooldownWindow:
    """Idle period after a trade resolves."""

    end_time: Optional[datetime] = None

    def is_active(self, now: datetime) -> bool:
        if self.end_time is None:
            return False
        return now < self.end_time

    def remaining(self, now: datetime) -> float:
        """Seconds left in the window, 0 once it has passed."""
        if not self.is_active(now):
            return 0.0
        return (self.end_time - now).total_seconds()

    def clear(self) -> None:
        self.end_time = None


@dataclass
class StateSnapshot:
    """Persisted system state."""

    signal_history: List[Trade] = field(default_factory=list)
    statistics: Statistics = field(default_factory=Statistics)
    cooldown_end: Optional[datetime] = None
    active_trade: Optional[Trade] = None
