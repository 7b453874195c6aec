from .calculations import (
    RsiDivergence,
    StochasticSeries,
    calculate_rsi,
    calculate_stochastic_slow,
    classify_rsi,
    compute_snapshot,
    detect_crossover,
    detect_rsi_divergence,
    latest_rsi,
    latest_stochastic,
)

__all__ = [
    "RsiDivergence",
    "StochasticSeries",
    "calculate_rsi",
    "calculate_stochastic_slow",
    "classify_rsi",
    "compute_snapshot",
    "detect_crossover",
    "detect_rsi_divergence",
    "latest_rsi",
    "latest_stochastic",
]
