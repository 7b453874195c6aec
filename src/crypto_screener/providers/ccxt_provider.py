from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

import ccxt.async_support as ccxt  # type: ignore[import-not-found]

from ..config import Settings, get_settings
from ..errors import TransportError
from ..models import Candle, Ticker
from .base import TIMEFRAME_MILLIS


class CCXTExchange(Protocol):
    markets: Optional[Dict[str, Any]]

    async def load_markets(self) -> dict[str, Any]:
        ...

    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str = "1m",
        since: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> list[list[float | int]]:
        ...

    async def fetch_tickers(self, symbols: Optional[list[str]] = None) -> dict[str, dict[str, Any]]:
        ...

    async def close(self) -> None:
        ...


@dataclass(slots=True)
class CCXTProviderConfig:
    exchange_id: str = "binance"
    quote_currency: str = "USDT"
    timeout_seconds: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "CCXTProviderConfig":
        return cls(
            exchange_id=settings.ccxt_exchange_id,
            quote_currency=settings.quote_currency,
            timeout_seconds=settings.ccxt_timeout_seconds,
        )


ExchangeFactory = Callable[[CCXTProviderConfig], Awaitable[CCXTExchange] | CCXTExchange]


class CCXTMarketDataProvider:
    """
    Market data through any ccxt exchange. Symbols are exchange market ids
    (``BTCUSDT``); ccxt unified symbols (``BTC/USDT``) stay internal to this class.
    """

    name = "ccxt"

    def __init__(
        self,
        config: CCXTProviderConfig | None = None,
        *,
        settings: Settings | None = None,
        exchange_factory: ExchangeFactory | None = None,
    ) -> None:
        self._config = config or CCXTProviderConfig.from_settings(settings or get_settings())
        self._exchange_factory = exchange_factory or self._create_exchange
        self._exchange: CCXTExchange | None = None
        self._exchange_lock = asyncio.Lock()
        self._logger = logging.getLogger("screener.providers.ccxt")

    async def get_candles(self, symbol: str, timeframe: str, limit: int) -> List[Candle]:
        exchange = await self._get_exchange()
        unified = self._unified_symbol(exchange, symbol)
        try:
            rows = await exchange.fetch_ohlcv(unified, timeframe=timeframe, limit=limit)
        except ccxt.BaseError as exc:
            raise TransportError(f"fetch_ohlcv({unified}, {timeframe}) failed: {exc}") from exc
        duration = TIMEFRAME_MILLIS.get(timeframe, 0)
        candles: List[Candle] = []
        for row in rows or []:
            if len(row) < 6:
                continue
            open_time = int(row[0])
            candles.append(
                Candle(
                    open_time=open_time,
                    open=float(row[1]),
                    high=float(row[2]),
                    low=float(row[3]),
                    close=float(row[4]),
                    volume=float(row[5]),
                    close_time=open_time + duration - 1 if duration else open_time,
                )
            )
        return candles

    async def get_all_tickers(self) -> List[Ticker]:
        exchange = await self._get_exchange()
        try:
            payload = await exchange.fetch_tickers()
        except ccxt.BaseError as exc:
            raise TransportError(f"fetch_tickers failed: {exc}") from exc
        tickers: List[Ticker] = []
        for unified, raw in (payload or {}).items():
            last = raw.get("last")
            if last is None or not self._is_spot(exchange, unified):
                continue
            tickers.append(
                Ticker(
                    symbol=self._market_id(exchange, unified),
                    last_price=float(last),
                    price_change=float(raw.get("change") or 0.0),
                    price_change_percent=float(raw.get("percentage") or 0.0),
                    volume=float(raw.get("baseVolume") or 0.0),
                    quote_volume=float(raw.get("quoteVolume") or 0.0),
                )
            )
        return tickers

    async def close(self) -> None:
        if self._exchange is None:
            return
        try:
            await self._exchange.close()
        except Exception:  # pragma: no cover - best effort cleanup
            self._logger.debug("Failed to close exchange session", exc_info=True)
        finally:
            self._exchange = None

    async def _get_exchange(self) -> CCXTExchange:
        async with self._exchange_lock:
            if self._exchange is not None:
                return self._exchange
            candidate = self._exchange_factory(self._config)
            exchange = await candidate if inspect.isawaitable(candidate) else candidate
            try:
                await exchange.load_markets()
            except ccxt.BaseError as exc:
                await exchange.close()
                raise TransportError(f"load_markets failed for {self._config.exchange_id}: {exc}") from exc
            self._exchange = exchange
            self._logger.info("ccxt exchange %s initialised", self._config.exchange_id)
            return exchange

    @staticmethod
    def _create_exchange(config: CCXTProviderConfig) -> CCXTExchange:
        try:
            exchange_class = getattr(ccxt, config.exchange_id)
        except AttributeError as exc:  # pragma: no cover - misconfiguration
            raise ValueError(f"Unknown CCXT exchange: {config.exchange_id}") from exc
        return exchange_class(
            {
                "enableRateLimit": True,
                "timeout": int(config.timeout_seconds * 1000),
            }
        )

    def _unified_symbol(self, exchange: CCXTExchange, market_id: str) -> str:
        # spot and linear swap markets can share an id (BTC/USDT vs BTC/USDT:USDT)
        matches = [
            (unified, market) for unified, market in (exchange.markets or {}).items() if market.get("id") == market_id
        ]
        if matches:
            spot = [unified for unified, market in matches if market.get("spot")]
            return spot[0] if spot else matches[0][0]
        quote = self._config.quote_currency
        if market_id.endswith(quote) and len(market_id) > len(quote):
            return f"{market_id[: -len(quote)]}/{quote}"
        return market_id

    @staticmethod
    def _is_spot(exchange: CCXTExchange, unified: str) -> bool:
        market = (exchange.markets or {}).get(unified)
        return market is None or market.get("spot", True) is not False

    @staticmethod
    def _market_id(exchange: CCXTExchange, unified: str) -> str:
        market = (exchange.markets or {}).get(unified)
        if market and market.get("id"):
            return str(market["id"])
        return unified.split(":")[0].replace("/", "")


__all__ = ["CCXTMarketDataProvider", "CCXTProviderConfig"]
