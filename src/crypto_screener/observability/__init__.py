"""
Observability helpers (metrics, logging instrumentation, etc.).
"""

from .prometheus import (
    PROMETHEUS_CONTENT_TYPE,
    generate_prometheus_metrics,
    record_alert,
    record_dropped_symbol,
    record_pass,
    record_symbol_counts,
    reset_prometheus_metrics,
    update_cache_size,
)

__all__ = [
    "PROMETHEUS_CONTENT_TYPE",
    "generate_prometheus_metrics",
    "record_alert",
    "record_dropped_symbol",
    "record_pass",
    "record_symbol_counts",
    "reset_prometheus_metrics",
    "update_cache_size",
]
