from __future__ import annotations

from dataclasses import replace
from typing import Callable, Dict, Iterable, List

from ..models import ScreenedSymbol, SortColumn, SortDirection

SortKey = Callable[[ScreenedSymbol], float] | Callable[[ScreenedSymbol], str]

_SORT_KEYS: Dict[SortColumn, SortKey] = {
    SortColumn.SYMBOL: lambda item: item.symbol,
    SortColumn.SIGNAL: lambda item: item.signal.value,
    SortColumn.PRICE: lambda item: item.price,
    SortColumn.PRICE_CHANGE_24H: lambda item: item.price_change_24h,
    SortColumn.PRICE_CHANGE_PERCENT_24H: lambda item: item.price_change_percent_24h,
    SortColumn.VOLUME_24H: lambda item: item.volume_24h,
    SortColumn.VOLUME_1H: lambda item: item.volume_1h,
    SortColumn.MARKET_CAP: lambda item: item.market_cap,
    SortColumn.OPEN_INTEREST_24H: lambda item: item.open_interest_24h,
    SortColumn.SLOW_K: lambda item: item.native.slow_k,
    SortColumn.SLOW_D: lambda item: item.native.slow_d,
    SortColumn.RSI: lambda item: item.native.rsi,
    SortColumn.SLOW_K_MTF: lambda item: item.mid.slow_k,
    SortColumn.SLOW_D_MTF: lambda item: item.mid.slow_d,
    SortColumn.RSI_MTF: lambda item: item.mid.rsi,
    SortColumn.SLOW_K_HTF: lambda item: item.high.slow_k,
    SortColumn.SLOW_D_HTF: lambda item: item.high.slow_d,
    SortColumn.RSI_HTF: lambda item: item.high.rsi,
}


def sort_key(column: SortColumn) -> SortKey:
    return _SORT_KEYS[column]


def sort_symbols(
    symbols: Iterable[ScreenedSymbol],
    column: SortColumn,
    direction: SortDirection,
) -> List[ScreenedSymbol]:
    # sorted() is stable in both directions, so ties keep their incoming order
    return sorted(symbols, key=sort_key(column), reverse=direction is SortDirection.DESC)


def assign_rankings(symbols: Iterable[ScreenedSymbol]) -> List[ScreenedSymbol]:
    return [replace(item, ranking=position) for position, item in enumerate(symbols, start=1)]


__all__ = ["assign_rankings", "sort_key", "sort_symbols"]
