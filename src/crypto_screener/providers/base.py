from __future__ import annotations

from typing import Protocol, Sequence

from ..models import Candle, Ticker


class MarketDataProvider(Protocol):
    """Upstream market data contract. Transport failures surface as ``TransportError``."""

    name: str

    async def get_candles(self, symbol: str, timeframe: str, limit: int) -> Sequence[Candle]:
        ...

    async def get_all_tickers(self) -> Sequence[Ticker]:
        ...

    async def close(self) -> None:
        ...


# interval -> milliseconds, shared by providers that have to derive candle close times
TIMEFRAME_MILLIS: dict[str, int] = {
    "1m": 60_000,
    "3m": 180_000,
    "5m": 300_000,
    "15m": 900_000,
    "30m": 1_800_000,
    "1h": 3_600_000,
    "2h": 7_200_000,
    "4h": 14_400_000,
    "6h": 21_600_000,
    "8h": 28_800_000,
    "12h": 43_200_000,
    "1d": 86_400_000,
    "3d": 259_200_000,
    "1w": 604_800_000,
}


__all__ = ["MarketDataProvider", "TIMEFRAME_MILLIS"]
