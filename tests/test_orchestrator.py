from __future__ import annotations

import asyncio
import math
from dataclasses import replace
from typing import List

import pytest

from crypto_screener.alerts import AlertDispatcher, SignalAlert
from crypto_screener.cache import ResponseCache
from crypto_screener.config import Settings
from crypto_screener.errors import TransportError
from crypto_screener.market_data import CandleFetcher
from crypto_screener.observability import generate_prometheus_metrics, reset_prometheus_metrics
from crypto_screener.models import (
    IndicatorSettings,
    RsiDirection,
    RsiSettings,
    ScreenerSettings,
    Signal,
    SortColumn,
    SortDirection,
)
from crypto_screener.screener import ScreeningOrchestrator, aggregate_stats

from utils.market_data import (
    FakeClock,
    StubProvider,
    by_timeframe,
    falling_candles,
    make_screened,
    make_snapshot,
    make_ticker,
    rising_candles,
)


def _settings(**overrides) -> Settings:
    values = {"batch_delay_seconds": 0.0, "log_dir": None, "universe_size": 100}
    values.update(overrides)
    return Settings(**values)


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def _orchestrator(provider: StubProvider, **kwargs) -> ScreeningOrchestrator:
    settings = kwargs.pop("settings", None) or _settings()
    fetcher = CandleFetcher(provider, ResponseCache(ttl_seconds=60.0, clock=FakeClock()))
    return ScreeningOrchestrator(fetcher, settings=settings, **kwargs)


def _oversold_with_rising_trend():
    return by_timeframe({"1h": falling_candles(), "4h": rising_candles(), "1d": rising_candles()})


def test_pass_produces_ranked_symbols_with_signals_and_estimates() -> None:
    async def scenario() -> None:
        provider = StubProvider(
            [make_ticker("ETHUSDT", 500.0), make_ticker("BTCUSDT", 900.0), make_ticker("ETHBTC", 9_000.0)],
            candles=_oversold_with_rising_trend(),
        )
        result = await _orchestrator(provider).run_pass(ScreenerSettings())

        assert result.error is None
        assert [item.symbol for item in result.symbols] == ["BTCUSDT", "ETHUSDT"]
        assert [item.ranking for item in result.symbols] == [1, 2]

        btc = result.symbols[0]
        assert btc.signal is Signal.ULTRA_BUY
        assert btc.native.slow_k == pytest.approx(5.0)
        assert btc.native.rsi == 0.0
        assert btc.mid.rsi > 99.0
        assert btc.high.rsi > 99.0
        assert btc.volume_24h == 900.0
        assert btc.volume_1h == 1_000.0 * 24
        assert btc.market_cap == 10.0 * 1_000.0 * 365
        assert btc.open_interest_24h == pytest.approx(90.0)

        assert result.stats.total_symbols == 2
        assert result.stats.filtered_symbols == 2
        assert result.stats.avg_rsi == 0.0
        assert result.stats.crossovers == 2

        fetched = {(symbol, timeframe) for symbol, timeframe, _ in provider.candle_calls}
        assert fetched == {(s, tf) for s in ("BTCUSDT", "ETHUSDT") for tf in ("1h", "4h", "1d")}

    asyncio.run(scenario())


def test_empty_universe_yields_zero_stats_without_error() -> None:
    async def scenario() -> None:
        result = await _orchestrator(StubProvider([])).run_pass(ScreenerSettings())
        assert result.error is None
        assert result.symbols == ()
        payload = result.as_dict()
        assert payload["symbols"] == []
        assert payload["stats"] == {"totalSymbols": 0, "filteredSymbols": 0, "avgRSI": 0.0, "crossovers": 0}

    asyncio.run(scenario())


def test_symbol_failures_only_drop_that_symbol() -> None:
    async def scenario() -> None:
        def candles(symbol: str, timeframe: str):
            return rising_candles(30) if symbol == "NEWUSDT" else rising_candles()

        provider = StubProvider(
            [make_ticker("BTCUSDT", 900.0), make_ticker("ETHUSDT", 800.0), make_ticker("NEWUSDT", 700.0)],
            candles=candles,
            failing_symbols=["ETHUSDT"],
        )
        result = await _orchestrator(provider).run_pass(ScreenerSettings())

        assert result.error is None
        assert [item.symbol for item in result.symbols] == ["BTCUSDT"]
        assert result.stats.total_symbols == 3
        assert result.stats.filtered_symbols == 1

    asyncio.run(scenario())


def test_rsi_filter_and_sort_settings_are_applied() -> None:
    async def scenario() -> None:
        def candles(symbol: str, timeframe: str):
            return rising_candles() if symbol.startswith("UP") else falling_candles()

        provider = StubProvider(
            [
                make_ticker("UPAUSDT", 100.0, last_price=3.0),
                make_ticker("DOWNUSDT", 900.0, last_price=1.0),
                make_ticker("UPBUSDT", 200.0, last_price=7.0),
            ],
            candles=candles,
        )
        settings = ScreenerSettings(
            indicators=IndicatorSettings(rsi=RsiSettings(threshold=50.0, direction=RsiDirection.ABOVE)),
            sort_column=SortColumn.PRICE,
            sort_direction=SortDirection.ASC,
        )
        result = await _orchestrator(provider).run_pass(settings)

        assert [item.symbol for item in result.symbols] == ["UPAUSDT", "UPBUSDT"]
        assert result.stats.total_symbols == 3
        assert result.stats.filtered_symbols == 2
        assert result.stats.avg_rsi > 99.0

    asyncio.run(scenario())


def test_ticker_outage_without_cache_fails_the_pass() -> None:
    async def scenario() -> None:
        provider = StubProvider([make_ticker("BTCUSDT", 900.0)])
        provider.ticker_error = TransportError("binance unreachable")
        result = await _orchestrator(provider).run_pass(ScreenerSettings())

        assert result.failed
        assert "binance unreachable" in result.error
        assert result.symbols == ()
        assert result.stats.total_symbols == 0

    asyncio.run(scenario())


def test_unexpected_error_returns_empty_result() -> None:
    async def scenario() -> None:
        provider = StubProvider()
        provider.ticker_error = RuntimeError("boom")
        result = await _orchestrator(provider).run_pass(ScreenerSettings())
        assert result.failed
        assert result.error == "boom"

    asyncio.run(scenario())


def test_symbols_are_evaluated_in_rate_limited_batches() -> None:
    async def scenario() -> None:
        tickers = [make_ticker(f"C{index:02d}USDT", 1_000.0 - index) for index in range(25)]
        sleep = RecordingSleep()
        orchestrator = _orchestrator(
            StubProvider(tickers),
            settings=_settings(batch_size=10, batch_delay_seconds=0.2),
            sleep=sleep,
        )
        result = await orchestrator.run_pass(ScreenerSettings())

        assert result.stats.total_symbols == 25
        assert sleep.calls == [0.2, 0.2]

    asyncio.run(scenario())


def test_universe_size_limits_candidates() -> None:
    async def scenario() -> None:
        tickers = [make_ticker(f"C{index:02d}USDT", 1_000.0 - index) for index in range(12)]
        orchestrator = _orchestrator(StubProvider(tickers), settings=_settings(universe_size=5))
        result = await orchestrator.run_pass(ScreenerSettings())
        assert [item.symbol for item in result.symbols] == [f"C{index:02d}USDT" for index in range(5)]

    asyncio.run(scenario())


class FailingSink:
    name = "failing"

    def __init__(self) -> None:
        self.attempts: List[SignalAlert] = []

    async def send(self, alert: SignalAlert) -> None:
        self.attempts.append(alert)
        raise RuntimeError("webhook rejected")


def test_alert_failures_do_not_affect_the_result() -> None:
    async def scenario() -> None:
        sink = FailingSink()
        provider = StubProvider([make_ticker("BTCUSDT", 900.0)], candles=_oversold_with_rising_trend())
        orchestrator = _orchestrator(provider, alert_dispatcher=AlertDispatcher([sink]))
        result = await orchestrator.run_pass(ScreenerSettings())
        assert sink.attempts == []

        await orchestrator.offer_alerts(result, ScreenerSettings())

        assert result.error is None
        assert [item.signal for item in result.symbols] == [Signal.ULTRA_BUY]
        assert [alert.symbol for alert in sink.attempts] == ["BTCUSDT"]

    asyncio.run(scenario())


def test_aggregate_stats_counts_near_crossovers() -> None:
    symbols = [
        make_screened("AUSDT", native=make_snapshot(slow_k=50.0, slow_d=46.0, rsi=40.0)),
        make_screened("BUSDT", native=make_snapshot(slow_k=50.0, slow_d=45.0, rsi=60.0)),
        make_screened("CUSDT", native=make_snapshot(slow_k=20.0, slow_d=40.0, rsi=80.0)),
    ]
    stats = aggregate_stats(10, symbols)
    assert stats.total_symbols == 10
    assert stats.filtered_symbols == 3
    assert stats.avg_rsi == pytest.approx(60.0)
    assert stats.crossovers == 1


def test_non_finite_candles_drop_the_symbol_as_compute_failure() -> None:
    async def scenario() -> None:
        def candles(symbol: str, timeframe: str):
            series = rising_candles()
            if symbol == "BADUSDT" and timeframe == "4h":
                series[-1] = replace(series[-1], high=float("nan"))
            return series

        reset_prometheus_metrics()
        provider = StubProvider(
            [make_ticker("BTCUSDT", 900.0), make_ticker("BADUSDT", 800.0)],
            candles=candles,
        )
        result = await _orchestrator(provider).run_pass(ScreenerSettings())

        assert result.error is None
        assert [item.symbol for item in result.symbols] == ["BTCUSDT"]
        assert result.stats.total_symbols == 2
        for item in result.symbols:
            for snapshot in (item.native, item.mid, item.high):
                assert all(math.isfinite(value) for value in (snapshot.slow_k, snapshot.slow_d, snapshot.rsi))

        payload = generate_prometheus_metrics().decode()
        assert 'screener_dropped_symbols_total{reason="compute"} 1.0' in payload

    asyncio.run(scenario())
