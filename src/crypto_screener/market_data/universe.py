from __future__ import annotations

import logging
from typing import Iterable, List

from ..errors import TransportError
from .fetcher import CandleFetcher

# Used verbatim when ticker data is unavailable.
FALLBACK_SYMBOLS: tuple[str, ...] = (
    "BTCUSDT",
    "ETHUSDT",
    "BNBUSDT",
    "ADAUSDT",
    "XRPUSDT",
    "SOLUSDT",
    "DOTUSDT",
    "DOGEUSDT",
    "AVAXUSDT",
    "LINKUSDT",
    "LTCUSDT",
    "UNIUSDT",
    "MATICUSDT",
    "ALGOUSDT",
    "ATOMUSDT",
)


class UniverseSelector:
    """Picks the most traded symbols quoted in the reference currency."""

    def __init__(
        self,
        fetcher: CandleFetcher,
        *,
        quote_currency: str = "USDT",
        restricted_symbols: Iterable[str] | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._quote_currency = quote_currency.upper()
        self._restricted = [symbol.upper() for symbol in restricted_symbols or []]
        self._logger = logging.getLogger("screener.market_data.universe")

    async def select(self, limit: int, *, restrict: bool = False) -> List[str]:
        if limit <= 0:
            return []
        try:
            tickers = await self._fetcher.fetch_all_tickers()
        except TransportError as exc:
            self._logger.warning("Ticker ranking unavailable (%s); using fallback universe", exc)
            symbols = list(FALLBACK_SYMBOLS)
        else:
            quoted = [ticker for ticker in tickers if ticker.symbol.endswith(self._quote_currency)]
            quoted.sort(key=lambda ticker: ticker.quote_volume, reverse=True)
            symbols = [ticker.symbol for ticker in quoted]
        if restrict:
            allowed = set(self._restricted)
            symbols = [symbol for symbol in symbols if symbol in allowed]
        return symbols[:limit]


__all__ = ["FALLBACK_SYMBOLS", "UniverseSelector"]
