from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List

import httpx

from ..config import Settings, get_settings
from ..errors import TransportError
from ..models import Candle, Ticker

logger = logging.getLogger("screener.providers.binance")


@dataclass(slots=True)
class BinanceProviderConfig:
    base_url: str = "https://api.binance.com/api/v3"
    timeout_seconds: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "BinanceProviderConfig":
        return cls(
            base_url=settings.binance_base_url.rstrip("/"),
            timeout_seconds=settings.http_timeout_seconds,
        )


class BinanceRestProvider:
    """
    Spot market data from the public Binance REST API (``/klines`` and ``/ticker/24hr``).
    """

    name = "binance"

    def __init__(
        self,
        config: BinanceProviderConfig | None = None,
        *,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config or BinanceProviderConfig.from_settings(settings or get_settings())
        self._client = client or httpx.AsyncClient(
            timeout=self._config.timeout_seconds,
            headers={"User-Agent": "crypto-screener/0.1"},
        )

    async def get_candles(self, symbol: str, timeframe: str, limit: int) -> List[Candle]:
        rows = await self._get_json("klines", {"symbol": symbol, "interval": timeframe, "limit": limit})
        try:
            return [self._parse_kline(row) for row in rows]
        except (TypeError, ValueError, IndexError) as exc:
            raise TransportError(f"Malformed kline payload for {symbol} ({timeframe})") from exc

    async def get_all_tickers(self) -> List[Ticker]:
        rows = await self._get_json("ticker/24hr", None)
        tickers: List[Ticker] = []
        for row in rows:
            try:
                tickers.append(self._parse_ticker(row))
            except (KeyError, TypeError, ValueError):
                logger.debug("Skipping malformed ticker row: %s", row)
        return tickers

    async def close(self) -> None:
        await self._client.aclose()

    async def _get_json(self, endpoint: str, params: dict[str, Any] | None) -> Any:
        url = f"{self._config.base_url}/{endpoint}"
        try:
            response = await self._client.get(url, params=params)
        except httpx.HTTPError as exc:
            raise TransportError(f"Request to {url} failed: {exc}") from exc
        if response.status_code >= 300:
            raise TransportError(
                f"Request to {url} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(f"Invalid JSON from {url}") from exc

    @staticmethod
    def _parse_kline(row: List[Any]) -> Candle:
        return Candle(
            open_time=int(row[0]),
            open=float(row[1]),
            high=float(row[2]),
            low=float(row[3]),
            close=float(row[4]),
            volume=float(row[5]),
            close_time=int(row[6]),
            quote_volume=float(row[7]),
            trade_count=int(row[8]),
            taker_buy_base_volume=float(row[9]),
            taker_buy_quote_volume=float(row[10]),
        )

    @staticmethod
    def _parse_ticker(row: dict[str, Any]) -> Ticker:
        return Ticker(
            symbol=str(row["symbol"]),
            last_price=float(row["lastPrice"]),
            price_change=float(row["priceChange"]),
            price_change_percent=float(row["priceChangePercent"]),
            volume=float(row["volume"]),
            quote_volume=float(row["quoteVolume"]),
        )


__all__ = ["BinanceProviderConfig", "BinanceRestProvider"]
