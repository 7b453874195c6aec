from __future__ import annotations

from ..config import Settings, get_settings
from .base import TIMEFRAME_MILLIS, MarketDataProvider
from .binance import BinanceProviderConfig, BinanceRestProvider
from .ccxt_provider import CCXTMarketDataProvider, CCXTProviderConfig


def build_provider(settings: Settings | None = None) -> MarketDataProvider:
    settings = settings or get_settings()
    if settings.market_data_provider == "ccxt":
        return CCXTMarketDataProvider(settings=settings)
    return BinanceRestProvider(settings=settings)


__all__ = [
    "BinanceProviderConfig",
    "BinanceRestProvider",
    "CCXTMarketDataProvider",
    "CCXTProviderConfig",
    "MarketDataProvider",
    "TIMEFRAME_MILLIS",
    "build_provider",
]
