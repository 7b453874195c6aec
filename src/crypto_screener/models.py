from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Timeframe(str, Enum):
    M1 = "1m"
    M5 = "5m"
    M15 = "15m"
    M30 = "30m"
    H1 = "1h"
    H4 = "4h"
    H12 = "12h"
    D1 = "1d"


# native timeframe -> (mid, high) confirmation intervals
HIGHER_TIMEFRAMES: dict[Timeframe, tuple[str, str]] = {
    Timeframe.M1: ("5m", "15m"),
    Timeframe.M5: ("15m", "1h"),
    Timeframe.M15: ("1h", "4h"),
    Timeframe.M30: ("2h", "6h"),
    Timeframe.H1: ("4h", "1d"),
    Timeframe.H4: ("12h", "1d"),
    Timeframe.H12: ("1d", "3d"),
    Timeframe.D1: ("3d", "1w"),
}


class CrossDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    BOTH = "both"


class RsiDirection(str, Enum):
    ABOVE = "above"
    BELOW = "below"
    BOTH = "both"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class SortColumn(str, Enum):
    SYMBOL = "symbol"
    PRICE = "price"
    PRICE_CHANGE_24H = "price_change_24h"
    PRICE_CHANGE_PERCENT_24H = "price_change_percent_24h"
    VOLUME_24H = "volume_24h"
    VOLUME_1H = "volume_1h"
    MARKET_CAP = "market_cap"
    OPEN_INTEREST_24H = "open_interest_24h"
    SLOW_K = "slow_k"
    SLOW_D = "slow_d"
    RSI = "rsi"
    SLOW_K_MTF = "slow_k_mtf"
    SLOW_D_MTF = "slow_d_mtf"
    RSI_MTF = "rsi_mtf"
    SLOW_K_HTF = "slow_k_htf"
    SLOW_D_HTF = "slow_d_htf"
    RSI_HTF = "rsi_htf"
    SIGNAL = "signal"


class CrossoverDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    NONE = "none"


class Signal(str, Enum):
    ULTRA_BUY = "ULTRA BUY"
    ULTRA_SELL = "ULTRA SELL"
    STRONG_BUY = "STRONG BUY"
    STRONG_SELL = "STRONG SELL"
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class _SettingsModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )


class StochasticSettings(_SettingsModel):
    enabled: bool = True
    fast_period: int = Field(default=10, ge=1)
    slow_k: int = Field(default=5, ge=1)
    slow_d: int = Field(default=5, ge=1)
    cross_direction: CrossDirection = CrossDirection.BOTH


class RsiSettings(_SettingsModel):
    enabled: bool = True
    period: int = Field(default=14, ge=1)
    threshold: float = Field(default=50.0, ge=0.0, le=100.0)
    direction: RsiDirection = RsiDirection.BOTH


class IndicatorSettings(_SettingsModel):
    stochastic: StochasticSettings = Field(default_factory=StochasticSettings)
    rsi: RsiSettings = Field(default_factory=RsiSettings)


class ScreenerSettings(_SettingsModel):
    """Per-pass screening parameters. Immutable; a pass never mutates it."""

    timeframe: Timeframe = Timeframe.H1
    indicators: IndicatorSettings = Field(default_factory=IndicatorSettings)
    sort_column: SortColumn = SortColumn.VOLUME_24H
    sort_direction: SortDirection = SortDirection.DESC
    refresh_interval_seconds: float = Field(default=60.0, gt=0.0)
    restrict_universe: bool = False

    @property
    def higher_timeframes(self) -> tuple[str, str]:
        return HIGHER_TIMEFRAMES[self.timeframe]

    def requires_refresh(self, other: "ScreenerSettings") -> bool:
        """True when switching to ``other`` invalidates the current result."""
        return (
            self.timeframe != other.timeframe
            or self.indicators != other.indicators
            or self.restrict_universe != other.restrict_universe
        )

    def sort_changed(self, other: "ScreenerSettings") -> bool:
        return self.sort_column != other.sort_column or self.sort_direction != other.sort_direction


@dataclass(slots=True, frozen=True)
class Candle:
    open_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    close_time: int
    quote_volume: float = 0.0
    trade_count: int = 0
    taker_buy_base_volume: float = 0.0
    taker_buy_quote_volume: float = 0.0


@dataclass(slots=True, frozen=True)
class Ticker:
    symbol: str
    last_price: float
    price_change: float
    price_change_percent: float
    volume: float
    quote_volume: float


@dataclass(slots=True, frozen=True)
class IndicatorSnapshot:
    slow_k: float
    slow_d: float
    rsi: float
    crossover: CrossoverDirection = CrossoverDirection.NONE


@dataclass(slots=True, frozen=True)
class ScreenedSymbol:
    symbol: str
    price: float
    price_change_24h: float
    price_change_percent_24h: float
    volume_24h: float
    volume_1h: float
    market_cap: float
    open_interest_24h: float
    native: IndicatorSnapshot
    mid: IndicatorSnapshot
    high: IndicatorSnapshot
    signal: Signal
    ranking: int = 0


@dataclass(slots=True, frozen=True)
class ScreenerStats:
    total_symbols: int = 0
    filtered_symbols: int = 0
    avg_rsi: float = 0.0
    crossovers: int = 0


@dataclass(slots=True, frozen=True)
class ScreenerResult:
    symbols: tuple[ScreenedSymbol, ...] = ()
    stats: ScreenerStats = field(default_factory=ScreenerStats)
    generated_at: datetime = field(default_factory=_now)
    error: str | None = None

    @classmethod
    def empty(cls, error: str | None = None) -> "ScreenerResult":
        return cls(error=error)

    @property
    def failed(self) -> bool:
        return self.error is not None

    def as_dict(self) -> dict[str, object]:
        return {
            "error": self.error,
            "symbols": [_symbol_dict(item) for item in self.symbols],
            "stats": {
                "totalSymbols": self.stats.total_symbols,
                "filteredSymbols": self.stats.filtered_symbols,
                "avgRSI": self.stats.avg_rsi,
                "crossovers": self.stats.crossovers,
            },
            "generatedAt": self.generated_at.isoformat(),
        }


def _symbol_dict(item: ScreenedSymbol) -> dict[str, object]:
    return {
        "symbol": item.symbol,
        "price": item.price,
        "priceChange24h": item.price_change_24h,
        "priceChangePercent24h": item.price_change_percent_24h,
        "volume24h": item.volume_24h,
        "volume1h": item.volume_1h,
        "marketCap": item.market_cap,
        "openInterest24h": item.open_interest_24h,
        "slowK": item.native.slow_k,
        "slowD": item.native.slow_d,
        "rsi": item.native.rsi,
        "crossover": item.native.crossover.value,
        "slowKMTF": item.mid.slow_k,
        "slowDMTF": item.mid.slow_d,
        "rsiMTF": item.mid.rsi,
        "slowKHTF": item.high.slow_k,
        "slowDHTF": item.high.slow_d,
        "rsiHTF": item.high.rsi,
        "signal": item.signal.value,
        "ranking": item.ranking,
    }


__all__ = [
    "Candle",
    "CrossDirection",
    "CrossoverDirection",
    "HIGHER_TIMEFRAMES",
    "IndicatorSettings",
    "IndicatorSnapshot",
    "RsiDirection",
    "RsiSettings",
    "ScreenedSymbol",
    "ScreenerResult",
    "ScreenerSettings",
    "ScreenerStats",
    "Signal",
    "SortColumn",
    "SortDirection",
    "StochasticSettings",
    "Ticker",
    "Timeframe",
]
