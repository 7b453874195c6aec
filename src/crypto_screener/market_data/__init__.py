from .fetcher import CandleFetcher
from .universe import FALLBACK_SYMBOLS, UniverseSelector

__all__ = ["CandleFetcher", "FALLBACK_SYMBOLS", "UniverseSelector"]
