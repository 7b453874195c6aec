from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, List, Literal, Sequence

import numpy as np
import pandas as pd

from ..errors import ComputeError, InsufficientDataError
from ..models import Candle, CrossoverDirection, IndicatorSnapshot, StochasticSettings

RSI_LOSS_EPSILON = 1e-4
FLAT_RANGE_K = 50.0


def _to_series(values: Iterable[float]) -> pd.Series:
    return pd.Series(list(values), dtype="float64")


def _as_list(series: pd.Series) -> List[float]:
    return [float(value) for value in series.tolist()]


@dataclass(slots=True)
class StochasticSeries:
    fast_k: List[float] = field(default_factory=list)
    slow_k: List[float] = field(default_factory=list)
    slow_d: List[float] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.slow_k or not self.slow_d


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    rs = avg_gain / (avg_loss or RSI_LOSS_EPSILON)
    return 100.0 - (100.0 / (1.0 + rs))


def calculate_rsi(candles: Sequence[Candle], period: int = 14) -> List[float]:
    """
    Wilder RSI over closing prices.

    The first value uses the simple mean of the first ``period`` gains and
    losses; every later value applies Wilder smoothing. One value is produced
    per candle from index ``period`` onwards, none if fewer than ``period + 1``
    candles are supplied.
    """
    if period < 1:
        raise ValueError("RSI period must be >= 1")
    if len(candles) < period + 1:
        return []

    closes = np.asarray([candle.close for candle in candles], dtype="float64")
    delta = np.diff(closes)
    gains = np.clip(delta, 0.0, None)
    losses = np.clip(-delta, 0.0, None)

    avg_gain = float(gains[:period].mean())
    avg_loss = float(losses[:period].mean())
    values = [_rsi_value(avg_gain, avg_loss)]
    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = (avg_gain * (period - 1) + float(gain)) / period
        avg_loss = (avg_loss * (period - 1) + float(loss)) / period
        values.append(_rsi_value(avg_gain, avg_loss))
    return values


def latest_rsi(candles: Sequence[Candle], period: int = 14) -> float | None:
    values = calculate_rsi(candles, period)
    return values[-1] if values else None


def classify_rsi(rsi: float) -> Literal["oversold", "overbought", "neutral"]:
    if rsi < 30:
        return "oversold"
    if rsi > 70:
        return "overbought"
    return "neutral"


@dataclass(slots=True, frozen=True)
class RsiDivergence:
    bullish: bool = False
    bearish: bool = False


def detect_rsi_divergence(
    prices: Sequence[float],
    rsi_values: Sequence[float],
    lookback: int = 10,
) -> RsiDivergence:
    """
    Rough divergence check over the last ``lookback`` points.

    Bullish when the price low sits in the older half of the window while the
    RSI low sits in the newer half; bearish is the mirror for highs.
    """
    if lookback < 1 or len(prices) < lookback or len(rsi_values) < lookback:
        return RsiDivergence()
    recent_prices = np.asarray(prices[-lookback:], dtype="float64")
    recent_rsi = np.asarray(rsi_values[-lookback:], dtype="float64")
    midpoint = lookback / 2
    # argmin/argmax return the first occurrence on ties
    return RsiDivergence(
        bullish=bool(np.argmin(recent_prices) < midpoint and np.argmin(recent_rsi) > midpoint),
        bearish=bool(np.argmax(recent_prices) < midpoint and np.argmax(recent_rsi) > midpoint),
    )


def calculate_stochastic_slow(
    candles: Sequence[Candle],
    fast_period: int = 10,
    slow_k_period: int = 5,
    slow_d_period: int = 5,
) -> StochasticSeries:
    if min(fast_period, slow_k_period, slow_d_period) < 1:
        raise ValueError("Stochastic periods must be >= 1")
    if len(candles) < fast_period + slow_k_period + slow_d_period - 2:
        return StochasticSeries()

    highs = _to_series(candle.high for candle in candles)
    lows = _to_series(candle.low for candle in candles)
    closes = _to_series(candle.close for candle in candles)

    highest = highs.rolling(fast_period).max()
    lowest = lows.rolling(fast_period).min()
    price_range = highest - lowest
    flat = price_range == 0
    fast_k = ((closes - lowest) / price_range.mask(flat) * 100.0).mask(flat, FLAT_RANGE_K)
    fast_k = fast_k.iloc[fast_period - 1 :].reset_index(drop=True)

    # warm-up rows are cut by position so a NaN from bad input stays in place
    slow_k = fast_k.rolling(slow_k_period).mean().iloc[slow_k_period - 1 :].reset_index(drop=True)
    slow_d = slow_k.rolling(slow_d_period).mean().iloc[slow_d_period - 1 :].reset_index(drop=True)
    return StochasticSeries(
        fast_k=_as_list(fast_k),
        slow_k=_as_list(slow_k),
        slow_d=_as_list(slow_d),
    )


def latest_stochastic(
    candles: Sequence[Candle],
    fast_period: int = 10,
    slow_k_period: int = 5,
    slow_d_period: int = 5,
) -> tuple[float, float] | None:
    series = calculate_stochastic_slow(candles, fast_period, slow_k_period, slow_d_period)
    if series.empty:
        return None
    return series.slow_k[-1], series.slow_d[-1]


def detect_crossover(slow_k: Sequence[float], slow_d: Sequence[float]) -> CrossoverDirection:
    if len(slow_k) < 2 or len(slow_d) < 2:
        return CrossoverDirection.NONE
    prev_k, current_k = slow_k[-2], slow_k[-1]
    prev_d, current_d = slow_d[-2], slow_d[-1]
    if prev_k <= prev_d and current_k > current_d:
        return CrossoverDirection.UP
    if prev_k >= prev_d and current_k < current_d:
        return CrossoverDirection.DOWN
    return CrossoverDirection.NONE


def compute_snapshot(
    candles: Sequence[Candle],
    stochastic: StochasticSettings,
    rsi_period: int,
) -> IndicatorSnapshot:
    """Latest Stochastic Slow and RSI values, never a placeholder for missing data."""
    for candle in candles:
        if not all(math.isfinite(value) for value in (candle.high, candle.low, candle.close)):
            raise ComputeError(f"Non-finite candle at open_time={candle.open_time}")
    series = calculate_stochastic_slow(
        candles,
        stochastic.fast_period,
        stochastic.slow_k,
        stochastic.slow_d,
    )
    rsi = latest_rsi(candles, rsi_period)
    if series.empty or rsi is None:
        raise InsufficientDataError(f"{len(candles)} candles are not enough for the configured indicators")

    slow_k, slow_d = series.slow_k[-1], series.slow_d[-1]
    if not all(math.isfinite(value) for value in (slow_k, slow_d, rsi)):
        raise ComputeError(f"Non-finite indicator output (slow_k={slow_k}, slow_d={slow_d}, rsi={rsi})")
    return IndicatorSnapshot(
        slow_k=slow_k,
        slow_d=slow_d,
        rsi=rsi,
        crossover=detect_crossover(series.slow_k, series.slow_d),
    )


__all__ = [
    "RsiDivergence",
    "StochasticSeries",
    "calculate_rsi",
    "calculate_stochastic_slow",
    "classify_rsi",
    "compute_snapshot",
    "detect_crossover",
    "detect_rsi_divergence",
    "latest_rsi",
    "latest_stochastic",
]
