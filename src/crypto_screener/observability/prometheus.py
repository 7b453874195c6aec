from __future__ import annotations

from typing import Literal

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

PROMETHEUS_CONTENT_TYPE = CONTENT_TYPE_LATEST

PassResult = Literal["success", "failure", "timeout"]
AlertResult = Literal["sent", "failed"]
DropReason = Literal["transport", "insufficient_data", "compute", "unexpected"]


def _build_registry() -> tuple[CollectorRegistry, Counter, Histogram, Gauge, Counter, Counter, Gauge]:
    registry = CollectorRegistry()
    pass_counter = Counter(
        "screener_passes_total",
        "Screening passes grouped by outcome",
        labelnames=("result",),
        registry=registry,
    )
    pass_duration = Histogram(
        "screener_pass_duration_seconds",
        "Wall-clock duration of a screening pass",
        buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0, 60.0, 120.0),
        registry=registry,
    )
    symbols_gauge = Gauge(
        "screener_symbols",
        "Symbols evaluated and surviving filters in the latest pass",
        labelnames=("stage",),
        registry=registry,
    )
    dropped_counter = Counter(
        "screener_dropped_symbols_total",
        "Symbols dropped from a pass before filtering",
        labelnames=("reason",),
        registry=registry,
    )
    alert_counter = Counter(
        "screener_alerts_total",
        "Signal alerts handed to delivery sinks",
        labelnames=("result",),
        registry=registry,
    )
    cache_gauge = Gauge(
        "screener_cache_entries",
        "Entries held by the response cache",
        registry=registry,
    )
    return registry, pass_counter, pass_duration, symbols_gauge, dropped_counter, alert_counter, cache_gauge


(
    _registry,
    _pass_counter,
    _pass_duration,
    _symbols_gauge,
    _dropped_counter,
    _alert_counter,
    _cache_gauge,
) = _build_registry()


def record_pass(result: PassResult, duration_seconds: float | None = None) -> None:
    _pass_counter.labels(result=result).inc()
    if duration_seconds is not None and duration_seconds >= 0:
        _pass_duration.observe(duration_seconds)


def record_symbol_counts(total: int, filtered: int) -> None:
    _symbols_gauge.labels(stage="evaluated").set(total)
    _symbols_gauge.labels(stage="filtered").set(filtered)


def record_dropped_symbol(reason: DropReason) -> None:
    _dropped_counter.labels(reason=reason).inc()


def record_alert(result: AlertResult) -> None:
    _alert_counter.labels(result=result).inc()


def update_cache_size(size: int) -> None:
    _cache_gauge.set(size)


def generate_prometheus_metrics() -> bytes:
    return generate_latest(_registry)


def reset_prometheus_metrics() -> None:
    global _registry, _pass_counter, _pass_duration, _symbols_gauge, _dropped_counter, _alert_counter, _cache_gauge
    (
        _registry,
        _pass_counter,
        _pass_duration,
        _symbols_gauge,
        _dropped_counter,
        _alert_counter,
        _cache_gauge,
    ) = _build_registry()
