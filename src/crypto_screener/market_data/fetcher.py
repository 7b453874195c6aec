from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, List, Sequence

from ..cache import ResponseCache, request_key
from ..errors import TransportError
from ..models import Candle, Ticker
from ..providers.base import MarketDataProvider


class CandleFetcher:
    """
    Reads candles and tickers through the response cache.

    Fresh entries are served without touching the provider. When a live call
    fails, the last known good payload for the same request is returned if the
    cache still holds one; otherwise the ``TransportError`` propagates.
    """

    def __init__(self, provider: MarketDataProvider, cache: ResponseCache) -> None:
        self._provider = provider
        self._cache = cache
        self._logger = logging.getLogger("screener.market_data.fetcher")

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    async def fetch_candles(self, symbol: str, timeframe: str, limit: int = 100) -> List[Candle]:
        key = request_key("klines", {"symbol": symbol, "interval": timeframe, "limit": limit})
        return await self._cached(
            key,
            lambda: self._provider.get_candles(symbol, timeframe, limit),
        )

    async def fetch_all_tickers(self) -> List[Ticker]:
        return await self._cached(request_key("ticker/24hr"), self._provider.get_all_tickers)

    async def _cached(self, key: str, call: Callable[[], Awaitable[Sequence[Any]]]) -> List[Any]:
        value, hit = self._cache.get(key)
        if hit:
            self._logger.debug("Cache hit for %s", key)
            return value
        try:
            payload = list(await call())
        except TransportError as exc:
            stale, found = self._cache.get_stale(key)
            if found:
                self._logger.warning("Live fetch for %s failed (%s); serving cached payload", key, exc)
                return stale
            raise
        self._cache.put(key, payload)
        return payload


__all__ = ["CandleFetcher"]
