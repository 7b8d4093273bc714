"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta

import pytest

from signal_desk.config import Config, ScheduleConfig
from signal_desk.models import Candle, StateSnapshot, Ticker


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeMarket:
    """In-memory market data source with switchable failures."""

    def __init__(self, price: float = 100.0, candles=None):
        self.price = price
        self.candles = list(candles or [])
        self.fail = None
        self.ticker_calls = 0
        self.candle_calls = 0
        self.last_limit = None

    def get_ticker(self, symbol: str) -> Ticker:
        self.ticker_calls += 1
        if self.fail:
            raise self.fail
        return Ticker(symbol, self.price, self.price * 1.01, self.price * 0.99)

    def get_candles(self, symbol: str, interval: str = "15m", limit: int = 30):
        self.candle_calls += 1
        self.last_limit = limit
        if self.fail:
            raise self.fail
        return list(self.candles[-limit:])


class FakeStore:
    """Records snapshots instead of writing them anywhere."""

    def __init__(self, snapshot: StateSnapshot = None):
        self.snapshot = snapshot or StateSnapshot()
        self.saved = []
        self.cleared = False

    def load(self) -> StateSnapshot:
        return self.snapshot

    def save(self, snapshot: StateSnapshot) -> bool:
        self.saved.append(snapshot)
        return True

    def clear(self) -> None:
        self.cleared = True


def build_candles(closes, spread: float = 1.0):
    """Candles whose high/low sit ``spread`` above/below each close."""
    return [
        Candle(
            timestamp=1_700_000_000_000 + i * 900_000,
            open=close,
            high=close + spread,
            low=close - spread,
            close=close,
            volume=10.0,
        )
        for i, close in enumerate(closes)
    ]


@pytest.fixture
def clock():
    """Fake clock starting at 2024-01-01 12:00."""
    return FakeClock()


@pytest.fixture
def make_candles():
    """Factory building candles from a list of closes."""
    return build_candles


@pytest.fixture
def oversold_closes():
    """A steady decline followed by a flat stretch: RSI 0 with a neutral trend."""
    return [130.0 - 2 * i for i in range(15)] + [102.0] * 15


@pytest.fixture
def balanced_closes():
    """Alternating closes: RSI near 50."""
    return [100.0, 101.0] * 15


@pytest.fixture
def fast_config():
    """Default config with millisecond tick intervals."""
    return Config(
        schedule=ScheduleConfig(price_interval=0.01, signal_interval=0.01, indicator_interval=0.01)
    )


@pytest.fixture
def fake_market(make_candles, oversold_closes):
    return FakeMarket(price=102.0, candles=make_candles(oversold_closes))


@pytest.fixture
def fake_store():
    return FakeStore()
