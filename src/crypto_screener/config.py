from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field

from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import ScreenerSettings


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SCREENER_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="allow",
    )

    service_name: str = "crypto-screener"
    service_port: int = 8090
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "info"
    log_dir: str | None = "logs"
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://localhost:5173",
        ]
    )

    market_data_provider: Literal["binance", "ccxt"] = "binance"
    binance_base_url: str = "https://api.binance.com/api/v3"
    http_timeout_seconds: float = 10.0
    ccxt_exchange_id: str = "binance"
    ccxt_timeout_seconds: float = 10.0

    cache_ttl_seconds: float = 60.0
    quote_currency: str = "USDT"
    universe_size: int = 100
    candle_limit: int = 100
    min_candles: int = 50  # below this a symbol is dropped before filtering
    batch_size: int = 10
    batch_delay_seconds: float = 0.2
    pass_timeout_seconds: float = 120.0

    scheduler_enabled: bool = True
    restricted_symbols: list[str] = Field(default_factory=list)
    screener: ScreenerSettings = Field(default_factory=ScreenerSettings)

    notable_signals: list[str] = Field(
        default_factory=lambda: ["ULTRA BUY", "ULTRA SELL", "STRONG BUY", "STRONG SELL"]
    )
    telegram_bot_token: str | None = None
    telegram_chat_id: str | None = None
    telegram_base_url: str = "https://api.telegram.org"
    discord_webhook_url: str | None = None
    alert_timeout_seconds: float = 5.0


@lru_cache
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
