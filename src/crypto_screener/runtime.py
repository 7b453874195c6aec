from __future__ import annotations

import logging
from dataclasses import dataclass

from .alerts import AlertDispatcher, build_alert_dispatcher
from .cache import ResponseCache
from .config import Settings, get_settings
from .market_data import CandleFetcher, UniverseSelector
from .providers import MarketDataProvider, build_provider
from .scheduler import ScreenerScheduler
from .screener import ScreeningOrchestrator

logger = logging.getLogger("screener.runtime")


@dataclass(slots=True)
class ScreenerRuntime:
    """Process-lifetime wiring: one cache, one provider, one scheduler."""

    settings: Settings
    cache: ResponseCache
    provider: MarketDataProvider
    fetcher: CandleFetcher
    orchestrator: ScreeningOrchestrator
    scheduler: ScreenerScheduler
    alerts: AlertDispatcher

    async def close(self) -> None:
        await self.scheduler.stop()
        await self.alerts.close()
        await self.provider.close()


def build_runtime(
    settings: Settings | None = None,
    *,
    provider: MarketDataProvider | None = None,
    alerts: AlertDispatcher | None = None,
) -> ScreenerRuntime:
    settings = settings or get_settings()
    cache = ResponseCache(ttl_seconds=settings.cache_ttl_seconds)
    provider = provider or build_provider(settings)
    fetcher = CandleFetcher(provider, cache)
    alerts = alerts or build_alert_dispatcher(settings)
    universe = UniverseSelector(
        fetcher,
        quote_currency=settings.quote_currency,
        restricted_symbols=settings.restricted_symbols,
    )
    orchestrator = ScreeningOrchestrator(
        fetcher,
        universe=universe,
        settings=settings,
        alert_dispatcher=alerts,
    )
    scheduler = ScreenerScheduler(orchestrator, settings=settings)
    logger.info(
        "Screener runtime built (provider=%s, alert sinks=%s)",
        provider.name,
        len(alerts.sinks),
    )
    return ScreenerRuntime(
        settings=settings,
        cache=cache,
        provider=provider,
        fetcher=fetcher,
        orchestrator=orchestrator,
        scheduler=scheduler,
        alerts=alerts,
    )


_runtime: ScreenerRuntime | None = None


def get_runtime() -> ScreenerRuntime:
    global _runtime
    if _runtime is None:
        _runtime = build_runtime()
    return _runtime


def set_runtime(runtime: ScreenerRuntime | None) -> None:
    global _runtime
    _runtime = runtime


__all__ = ["ScreenerRuntime", "build_runtime", "get_runtime", "set_runtime"]
