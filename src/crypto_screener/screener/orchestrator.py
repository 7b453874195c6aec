from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Sequence

from ..alerts import AlertDispatcher
from ..config import Settings, get_settings
from ..errors import ComputeError, InsufficientDataError, TransportError
from ..indicators import compute_snapshot
from ..market_data import CandleFetcher, UniverseSelector
from ..models import ScreenedSymbol, ScreenerResult, ScreenerSettings, ScreenerStats, Ticker
from ..observability import record_dropped_symbol, record_pass, record_symbol_counts, update_cache_size
from ..signals import classify_signal
from .filters import apply_filters, has_enough_candles
from .sorting import assign_rankings, sort_symbols

CROSSOVER_PROXIMITY = 5.0

SleepFn = Callable[[float], Awaitable[None]]


def aggregate_stats(total_symbols: int, symbols: Sequence[ScreenedSymbol]) -> ScreenerStats:
    if not symbols:
        return ScreenerStats(total_symbols=total_symbols)
    avg_rsi = sum(item.native.rsi for item in symbols) / len(symbols)
    crossovers = sum(1 for item in symbols if abs(item.native.slow_k - item.native.slow_d) < CROSSOVER_PROXIMITY)
    return ScreenerStats(
        total_symbols=total_symbols,
        filtered_symbols=len(symbols),
        avg_rsi=avg_rsi,
        crossovers=crossovers,
    )


class ScreeningOrchestrator:
    """
    Runs one screening pass end to end:
    universe -> candles -> indicators -> signal -> filter -> sort -> rank -> stats.

    The orchestrator holds no state between passes. A hard failure anywhere in
    the pass returns an empty result; a failure for a single symbol only drops
    that symbol. Alerts are not part of the pass: callers hand a finished
    result to ``offer_alerts``.
    """

    def __init__(
        self,
        fetcher: CandleFetcher,
        *,
        universe: UniverseSelector | None = None,
        settings: Settings | None = None,
        alert_dispatcher: AlertDispatcher | None = None,
        sleep: SleepFn | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._fetcher = fetcher
        self._universe = universe or UniverseSelector(
            fetcher,
            quote_currency=self._settings.quote_currency,
            restricted_symbols=self._settings.restricted_symbols,
        )
        self._alerts = alert_dispatcher
        self._sleep = sleep or asyncio.sleep
        self._batch_size = max(1, self._settings.batch_size)
        self._batch_delay = self._settings.batch_delay_seconds
        self._candle_limit = self._settings.candle_limit
        self._min_candles = self._settings.min_candles
        self._logger = logging.getLogger("screener.orchestrator")

    async def run_pass(self, screener_settings: ScreenerSettings) -> ScreenerResult:
        start = time.perf_counter()
        try:
            result = await self._run(screener_settings)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            record_pass("failure", time.perf_counter() - start)
            self._logger.exception("Screening pass failed: %s", exc)
            return ScreenerResult.empty(error=str(exc) or type(exc).__name__)
        finally:
            update_cache_size(self._fetcher.cache.size())

        duration = time.perf_counter() - start
        record_pass("success", duration)
        record_symbol_counts(result.stats.total_symbols, result.stats.filtered_symbols)
        self._logger.info(
            "Screening pass finished in %.2fs (%s evaluated, %s passed filters)",
            duration,
            result.stats.total_symbols,
            result.stats.filtered_symbols,
        )
        return result

    async def _run(self, screener_settings: ScreenerSettings) -> ScreenerResult:
        universe = await self._universe.select(
            self._settings.universe_size,
            restrict=screener_settings.restrict_universe,
        )
        tickers = await self._fetcher.fetch_all_tickers()
        by_symbol = {ticker.symbol: ticker for ticker in tickers}
        candidates = [by_symbol[symbol] for symbol in universe if symbol in by_symbol]
        self._logger.debug("Evaluating %s of %s universe symbols", len(candidates), len(universe))

        evaluated = await self._evaluate_in_batches(candidates, screener_settings)
        filtered = apply_filters(evaluated, screener_settings)
        ranked = assign_rankings(
            sort_symbols(filtered, screener_settings.sort_column, screener_settings.sort_direction)
        )
        return ScreenerResult(symbols=tuple(ranked), stats=aggregate_stats(len(candidates), ranked))

    async def _evaluate_in_batches(
        self,
        candidates: Sequence[Ticker],
        screener_settings: ScreenerSettings,
    ) -> List[ScreenedSymbol]:
        evaluated: List[ScreenedSymbol] = []
        for offset in range(0, len(candidates), self._batch_size):
            batch = candidates[offset : offset + self._batch_size]
            outcomes = await asyncio.gather(
                *(self._evaluate_symbol(ticker, screener_settings) for ticker in batch),
                return_exceptions=True,
            )
            for ticker, outcome in zip(batch, outcomes):
                if isinstance(outcome, ScreenedSymbol):
                    evaluated.append(outcome)
                elif isinstance(outcome, Exception):
                    self._drop(ticker.symbol, outcome)
                else:
                    raise outcome
            if offset + self._batch_size < len(candidates):
                await self._sleep(self._batch_delay)
        return evaluated

    async def _evaluate_symbol(self, ticker: Ticker, screener_settings: ScreenerSettings) -> ScreenedSymbol:
        mid_timeframe, high_timeframe = screener_settings.higher_timeframes
        native_candles, mid_candles, high_candles = await asyncio.gather(
            self._fetcher.fetch_candles(ticker.symbol, screener_settings.timeframe.value, self._candle_limit),
            self._fetcher.fetch_candles(ticker.symbol, mid_timeframe, self._candle_limit),
            self._fetcher.fetch_candles(ticker.symbol, high_timeframe, self._candle_limit),
        )
        if not has_enough_candles((native_candles, mid_candles, high_candles), self._min_candles):
            raise InsufficientDataError(
                f"{ticker.symbol}: candle counts {len(native_candles)}/{len(mid_candles)}/{len(high_candles)} "
                f"below minimum {self._min_candles}"
            )

        stochastic = screener_settings.indicators.stochastic
        rsi_period = screener_settings.indicators.rsi.period
        native = compute_snapshot(native_candles, stochastic, rsi_period)
        mid = compute_snapshot(mid_candles, stochastic, rsi_period)
        high = compute_snapshot(high_candles, stochastic, rsi_period)

        return ScreenedSymbol(
            symbol=ticker.symbol,
            price=ticker.last_price,
            price_change_24h=ticker.price_change,
            price_change_percent_24h=ticker.price_change_percent,
            volume_24h=ticker.quote_volume,
            volume_1h=ticker.volume * 24,
            market_cap=ticker.last_price * ticker.volume * 365,
            open_interest_24h=ticker.quote_volume * 0.1,
            native=native,
            mid=mid,
            high=high,
            signal=classify_signal(native, mid, high),
        )

    def _drop(self, symbol: str, exc: Exception) -> None:
        if isinstance(exc, TransportError):
            record_dropped_symbol("transport")
            self._logger.warning("Dropping %s: market data unavailable (%s)", symbol, exc)
        elif isinstance(exc, InsufficientDataError):
            record_dropped_symbol("insufficient_data")
            self._logger.debug("Dropping %s: %s", symbol, exc)
        elif isinstance(exc, ComputeError):
            record_dropped_symbol("compute")
            self._logger.error("Dropping %s: indicator computation failed: %s", symbol, exc)
        else:
            record_dropped_symbol("unexpected")
            self._logger.error("Dropping %s after unexpected error", symbol, exc_info=exc)

    async def offer_alerts(self, result: ScreenerResult, screener_settings: ScreenerSettings) -> None:
        """Hand notable signals to the alert dispatcher. Never raises except on cancellation."""
        if self._alerts is None or not result.symbols:
            return
        try:
            await self._alerts.dispatch(result, screener_settings)
        except Exception:
            self._logger.exception("Alert dispatch failed; screening result is unaffected")


__all__ = ["CROSSOVER_PROXIMITY", "ScreeningOrchestrator", "aggregate_stats"]
