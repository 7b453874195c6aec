from .classifier import classify_signal, is_buy_signal, is_sell_signal

__all__ = ["classify_signal", "is_buy_signal", "is_sell_signal"]
