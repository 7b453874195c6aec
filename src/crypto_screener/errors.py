from __future__ import annotations


class ScreenerError(RuntimeError):
    """Base class for screening pipeline failures."""


class TransportError(ScreenerError):
    """Raised when the market data provider is unreachable or answers with a non-2xx status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InsufficientDataError(ScreenerError):
    """Raised when a candle series is too short for the requested indicators."""


class ComputeError(ScreenerError):
    """Raised when an indicator produces a non-finite value from degenerate input."""


__all__ = ["ComputeError", "InsufficientDataError", "ScreenerError", "TransportError"]
