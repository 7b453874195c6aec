from __future__ import annotations

from typing import Callable, Iterable, List, Sequence

from ..models import (
    CrossDirection,
    IndicatorSnapshot,
    RsiDirection,
    RsiSettings,
    ScreenedSymbol,
    ScreenerSettings,
    StochasticSettings,
)

SymbolPredicate = Callable[[ScreenedSymbol], bool]


def stochastic_passes(snapshot: IndicatorSnapshot, cross_direction: CrossDirection) -> bool:
    if cross_direction is CrossDirection.UP:
        return snapshot.slow_k > snapshot.slow_d
    if cross_direction is CrossDirection.DOWN:
        return snapshot.slow_k < snapshot.slow_d
    return True


def rsi_passes(rsi: float, threshold: float, direction: RsiDirection) -> bool:
    if direction is RsiDirection.ABOVE:
        return rsi > threshold
    if direction is RsiDirection.BELOW:
        return rsi < threshold
    return True


def stochastic_filter(settings: StochasticSettings) -> SymbolPredicate:
    return lambda item: stochastic_passes(item.native, settings.cross_direction)


def rsi_filter(settings: RsiSettings) -> SymbolPredicate:
    return lambda item: rsi_passes(item.native.rsi, settings.threshold, settings.direction)


def build_filter(settings: ScreenerSettings) -> SymbolPredicate:
    """Compose the enabled indicator predicates; every one of them must pass."""
    predicates: List[SymbolPredicate] = []
    if settings.indicators.stochastic.enabled:
        predicates.append(stochastic_filter(settings.indicators.stochastic))
    if settings.indicators.rsi.enabled:
        predicates.append(rsi_filter(settings.indicators.rsi))
    return lambda item: all(predicate(item) for predicate in predicates)


def apply_filters(symbols: Iterable[ScreenedSymbol], settings: ScreenerSettings) -> List[ScreenedSymbol]:
    predicate = build_filter(settings)
    return [item for item in symbols if predicate(item)]


def has_enough_candles(series: Sequence[Sequence[object]], minimum: int) -> bool:
    return all(len(candles) >= minimum for candles in series)


__all__ = [
    "SymbolPredicate",
    "apply_filters",
    "build_filter",
    "has_enough_candles",
    "rsi_filter",
    "rsi_passes",
    "stochastic_filter",
    "stochastic_passes",
]
