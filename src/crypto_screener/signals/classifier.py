from __future__ import annotations

from typing import Callable, Sequence

from ..models import IndicatorSnapshot, Signal

OVERSOLD_STOCH = 20.0
OVERBOUGHT_STOCH = 80.0
OVERSOLD_RSI = 30.0
OVERBOUGHT_RSI = 70.0
TREND_RSI = 50.0

Rule = Callable[[IndicatorSnapshot, IndicatorSnapshot, IndicatorSnapshot], bool]


def _stoch_oversold(snapshot: IndicatorSnapshot) -> bool:
    return snapshot.slow_k < OVERSOLD_STOCH and snapshot.slow_d < OVERSOLD_STOCH


def _stoch_overbought(snapshot: IndicatorSnapshot) -> bool:
    return snapshot.slow_k > OVERBOUGHT_STOCH and snapshot.slow_d > OVERBOUGHT_STOCH


# Ordered: the first matching rule wins, most extreme signals first.
_RULES: Sequence[tuple[Signal, Rule]] = (
    (
        Signal.ULTRA_BUY,
        lambda native, mid, high: high.rsi > TREND_RSI
        and mid.rsi > TREND_RSI
        and _stoch_oversold(native)
        and native.rsi < OVERSOLD_RSI,
    ),
    (
        Signal.ULTRA_SELL,
        lambda native, mid, high: high.rsi < TREND_RSI
        and mid.rsi < TREND_RSI
        and _stoch_overbought(native)
        and native.rsi > OVERBOUGHT_RSI,
    ),
    (
        Signal.STRONG_BUY,
        lambda native, mid, high: mid.rsi > TREND_RSI and _stoch_oversold(native) and native.rsi < OVERSOLD_RSI,
    ),
    (
        Signal.STRONG_SELL,
        lambda native, mid, high: mid.rsi < TREND_RSI and _stoch_overbought(native) and native.rsi > OVERBOUGHT_RSI,
    ),
    (Signal.BUY, lambda native, mid, high: mid.rsi > TREND_RSI and _stoch_oversold(native)),
    (Signal.SELL, lambda native, mid, high: mid.rsi < TREND_RSI and _stoch_overbought(native)),
)


def classify_signal(
    native: IndicatorSnapshot,
    mid: IndicatorSnapshot,
    high: IndicatorSnapshot,
) -> Signal:
    for signal, rule in _RULES:
        if rule(native, mid, high):
            return signal
    return Signal.HOLD


def is_buy_signal(signal: Signal) -> bool:
    return signal in (Signal.ULTRA_BUY, Signal.STRONG_BUY, Signal.BUY)


def is_sell_signal(signal: Signal) -> bool:
    return signal in (Signal.ULTRA_SELL, Signal.STRONG_SELL, Signal.SELL)
