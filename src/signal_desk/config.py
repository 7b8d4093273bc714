"""Configuration management module for Signal Desk."""

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

# Signal confidence never leaves this range
CONFIDENCE_FLOOR = 0.3
CONFIDENCE_CEILING = 0.95


@dataclass
class MarketConfig:
    """Market data endpoint configuration."""
    base_url: str = "https://www.okx.com/api/v5"
    symbol: str = "BTC-USDT"
    candle_interval: str = "15m"
    candle_limit: int = 30
    initial_candle_limit: int = 50
    request_timeout: float = 10.0


@dataclass
class TradingConfig:
    """Position sizing, exit levels and cooldown."""
    account_balance: float = 100.0  # USDT
    risk_per_trade: float = 0.02
    tp1_pct: float = 0.015
    tp2_pct: float = 0.03
    sl_pct: float = 0.012
    max_position_pct: float = 0.5
    cooldown_seconds: int = 180
    history_limit: int = 20


@dataclass
class IndicatorConfig:
    """Indicator engine parameters."""
    rsi_period: int = 14
    sr_lookback: int = 20
    min_candles: int = 20
    trend_threshold: float = 0.5  # Percent


@dataclass
class SignalConfig:
    """Decision thresholds and confidence heuristics."""
    rsi_oversold: float = 30.0
    rsi_overbought: float = 70.0
    rsi_neutral_min: float = 40.0
    rsi_neutral_max: float = 60.0
    high_volatility: float = 5.0  # Percent

    base_confidence: float = 0.7
    rsi_confidence_divisor: float = 50.0
    position_bonus: float = 0.05
    support_bonus_position: float = 40.0
    resistance_bonus_position: float = 60.0
    near_support_position: float = 30.0
    near_resistance_position: float = 70.0
    range_confidence: float = 0.65
    neutral_confidence: float = 0.6
    hold_confidence: float = 0.5
    volatility_penalty: float = 0.8
    min_confidence: float = 0.3
    max_confidence: float = 0.95


@dataclass
class ScheduleConfig:
    """Tick intervals in seconds."""
    price_interval: float = 10.0
    signal_interval: float = 30.0
    indicator_interval: float = 60.0


@dataclass
class StorageConfig:
    """Local state storage."""
    db_path: str = "data/signal_desk.db"
    export_dir: str = "exports"


@dataclass
class Config:
    """Main configuration container."""
    market: MarketConfig = field(default_factory=MarketConfig)
    trading: TradingConfig = field(default_factory=TradingConfig)
    indicators: IndicatorConfig = field(default_factory=IndicatorConfig)
    signal: SignalConfig = field(default_factory=SignalConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    log_level: str = "INFO"

    def to_dict(self) -> dict:
        return asdict(self)


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


class ConfigManager:
    """Manages loading and validation of configuration."""

    SECTIONS = {
        "market": MarketConfig,
        "trading": TradingConfig,
        "indicators": IndicatorConfig,
        "signal": SignalConfig,
        "schedule": ScheduleConfig,
        "storage": StorageConfig,
    }

    def __init__(self, config_path: str | Path | None = None, load_env: bool = True):
        """Initialize configuration manager.

        Args:
            config_path: Path to config.json file. If None, uses default location.
            load_env: Whether to load .env file and apply env overrides. Set to False for testing.
        """
        self.config_path = Path(config_path) if config_path else Path("config/config.json")
        self._config: Config | None = None
        self._load_env = load_env
        if load_env:
            load_dotenv()

    def load(self) -> Config:
        """Load configuration from file and environment variables.

        Returns:
            Loaded and validated Config object.

        Raises:
            ConfigValidationError: If any value is out of range or unknown.
        """
        config_data = self._load_json()
        self._config = self._parse_config(config_data)
        self._override_from_env()
        self._validate()
        return self._config

    def _load_json(self) -> dict[str, Any]:
        """Load JSON configuration file."""
        if not self.config_path.exists():
            return {}

        try:
            with open(self.config_path) as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigValidationError(f"Invalid JSON in {self.config_path}: {e}") from e

    def _parse_config(self, data: dict[str, Any]) -> Config:
        """Parse configuration dictionary into Config object."""
        if not isinstance(data, dict):
            raise ConfigValidationError(f"{self.config_path} must contain a JSON object")

        sections = {}
        for name, section_cls in self.SECTIONS.items():
            section_data = data.get(name, {}) or {}
            if not isinstance(section_data, dict):
                raise ConfigValidationError(f"'{name}' section must be an object")
            known = section_cls.__dataclass_fields__
            unknown = [key for key in section_data if key not in known]
            if unknown:
                raise ConfigValidationError(
                    f"Unknown keys in '{name}' section: {', '.join(sorted(unknown))}"
                )
            self._check_types(name, section_cls, section_data)
            try:
                sections[name] = section_cls(**section_data)
            except TypeError as e:
                raise ConfigValidationError(f"Invalid '{name}' section: {e}") from e

        log_level = data.get("log_level", "INFO")
        if not isinstance(log_level, str):
            raise ConfigValidationError("log_level must be a string")

        return Config(**sections, log_level=log_level)

    @staticmethod
    def _check_types(name: str, section_cls: type, section_data: dict[str, Any]) -> None:
        """Reject values whose type differs from the field default (ints allowed for floats)."""
        defaults = section_cls()
        errors = []
        for key, value in section_data.items():
            expected = type(getattr(defaults, key))
            accepted = (int, float) if expected is float else expected
            if isinstance(value, bool) or not isinstance(value, accepted):
                errors.append(
                    f"{name}.{key} must be {expected.__name__}, got {type(value).__name__}"
                )
        if errors:
            raise ConfigValidationError("\n".join(errors))

    def _override_from_env(self) -> None:
        """Override configuration values from environment variables."""
        if not self._config:
            return

        # Skip env overrides if load_env is False (for testing)
        if not self._load_env:
            return

        try:
            # Market
            if symbol := os.getenv("SIGNAL_DESK_SYMBOL"):
                self._config.market.symbol = symbol
            if api_base := os.getenv("SIGNAL_DESK_API_BASE"):
                self._config.market.base_url = api_base

            # Trading
            if balance := os.getenv("ACCOUNT_BALANCE"):
                self._config.trading.account_balance = float(balance)
            if risk := os.getenv("RISK_PER_TRADE"):
                self._config.trading.risk_per_trade = float(risk)
            if cooldown := os.getenv("COOLDOWN_SECONDS"):
                self._config.trading.cooldown_seconds = int(cooldown)
        except ValueError as e:
            raise ConfigValidationError(f"Invalid environment override: {e}") from e

        # Storage
        if db_path := os.getenv("SIGNAL_DESK_DB_PATH"):
            self._config.storage.db_path = db_path

        if log_level := os.getenv("LOG_LEVEL"):
            self._config.log_level = log_level.upper()

    def _validate(self) -> None:
        """Validate configuration value ranges.

        Raises:
            ConfigValidationError: If validation fails.
        """
        if not self._config:
            raise ConfigValidationError("Configuration not loaded")

        errors = []
        trading = self._config.trading
        signal = self._config.signal
        schedule = self._config.schedule

        if not self._config.market.symbol:
            errors.append("market.symbol is required")
        if self._config.market.candle_limit < self._config.indicators.min_candles:
            errors.append("market.candle_limit must be >= indicators.min_candles")

        if trading.account_balance <= 0:
            errors.append("trading.account_balance must be > 0")
        if not 0 < trading.risk_per_trade <= 1:
            errors.append("trading.risk_per_trade must be in (0, 1]")
        if not 0 < trading.sl_pct < 1:
            errors.append("trading.sl_pct must be in (0, 1)")
        if not 0 < trading.tp1_pct <= trading.tp2_pct < 1:
            errors.append("trading take profits must satisfy 0 < tp1_pct <= tp2_pct < 1")
        if not 0 < trading.max_position_pct <= 1:
            errors.append("trading.max_position_pct must be in (0, 1]")
        if trading.cooldown_seconds < 0:
            errors.append("trading.cooldown_seconds must be >= 0")
        if trading.history_limit < 1:
            errors.append("trading.history_limit must be >= 1")

        if not (
            signal.rsi_oversold < signal.rsi_neutral_min
            <= signal.rsi_neutral_max < signal.rsi_overbought
        ):
            errors.append(
                "signal RSI bounds must satisfy oversold < neutral_min <= neutral_max < overbought"
            )
        if not (
            CONFIDENCE_FLOOR <= signal.min_confidence
            <= signal.max_confidence <= CONFIDENCE_CEILING
        ):
            errors.append(
                f"signal confidence bounds must satisfy {CONFIDENCE_FLOOR} <= "
                f"min_confidence <= max_confidence <= {CONFIDENCE_CEILING}"
            )

        for name in ("price_interval", "signal_interval", "indicator_interval"):
            if getattr(schedule, name) <= 0:
                errors.append(f"schedule.{name} must be > 0")

        if errors:
            raise ConfigValidationError("\n".join(errors))

    @property
    def config(self) -> Config:
        """Get loaded configuration."""
        if not self._config:
            raise ConfigValidationError("Configuration not loaded. Call load() first.")
        return self._config
