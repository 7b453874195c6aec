from .filters import apply_filters, build_filter, rsi_passes, stochastic_passes
from .orchestrator import CROSSOVER_PROXIMITY, ScreeningOrchestrator, aggregate_stats
from .sorting import assign_rankings, sort_key, sort_symbols

__all__ = [
    "CROSSOVER_PROXIMITY",
    "ScreeningOrchestrator",
    "aggregate_stats",
    "apply_filters",
    "assign_rankings",
    "build_filter",
    "rsi_passes",
    "sort_key",
    "sort_symbols",
    "stochastic_passes",
]
