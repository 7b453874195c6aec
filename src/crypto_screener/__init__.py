"""Multi-timeframe Stochastic/RSI screener for exchange-listed crypto pairs."""

__version__ = "0.1.0"
