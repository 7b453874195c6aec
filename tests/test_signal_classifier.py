from __future__ import annotations

from crypto_screener.models import Signal
from crypto_screener.signals import classify_signal, is_buy_signal, is_sell_signal

from utils.market_data import make_snapshot


def test_ultra_buy_when_every_timeframe_agrees() -> None:
    native = make_snapshot(slow_k=15.0, slow_d=10.0, rsi=25.0)
    assert classify_signal(native, make_snapshot(rsi=55.0), make_snapshot(rsi=60.0)) is Signal.ULTRA_BUY


def test_ultra_buy_takes_precedence_over_strong_buy() -> None:
    # also satisfies STRONG BUY and BUY; the most extreme rule wins
    native = make_snapshot(slow_k=12.0, slow_d=14.0, rsi=20.0)
    mid = make_snapshot(rsi=65.0)
    high = make_snapshot(rsi=58.0)
    assert classify_signal(native, mid, high) is Signal.ULTRA_BUY


def test_buy_ladder_without_higher_confirmation() -> None:
    native = make_snapshot(slow_k=15.0, slow_d=10.0, rsi=25.0)
    assert classify_signal(native, make_snapshot(rsi=55.0), make_snapshot(rsi=45.0)) is Signal.STRONG_BUY

    native = make_snapshot(slow_k=15.0, slow_d=10.0, rsi=35.0)
    assert classify_signal(native, make_snapshot(rsi=55.0), make_snapshot(rsi=60.0)) is Signal.BUY


def test_sell_ladder_mirrors_buy_ladder() -> None:
    native = make_snapshot(slow_k=85.0, slow_d=90.0, rsi=75.0)
    assert classify_signal(native, make_snapshot(rsi=45.0), make_snapshot(rsi=40.0)) is Signal.ULTRA_SELL
    assert classify_signal(native, make_snapshot(rsi=45.0), make_snapshot(rsi=60.0)) is Signal.STRONG_SELL

    native = make_snapshot(slow_k=85.0, slow_d=90.0, rsi=65.0)
    assert classify_signal(native, make_snapshot(rsi=45.0), make_snapshot(rsi=40.0)) is Signal.SELL


def test_hold_when_mid_timeframe_disagrees_or_levels_are_neutral() -> None:
    oversold = make_snapshot(slow_k=15.0, slow_d=10.0, rsi=25.0)
    assert classify_signal(oversold, make_snapshot(rsi=45.0), make_snapshot(rsi=60.0)) is Signal.HOLD
    assert classify_signal(make_snapshot(), make_snapshot(rsi=55.0), make_snapshot(rsi=60.0)) is Signal.HOLD


def test_thresholds_are_strict() -> None:
    # K exactly at 20 is not oversold; mid RSI exactly 50 is not a trend
    assert classify_signal(
        make_snapshot(slow_k=20.0, slow_d=10.0, rsi=25.0), make_snapshot(rsi=55.0), make_snapshot(rsi=60.0)
    ) is Signal.HOLD
    assert classify_signal(
        make_snapshot(slow_k=15.0, slow_d=10.0, rsi=25.0), make_snapshot(rsi=50.0), make_snapshot(rsi=60.0)
    ) is Signal.HOLD


def test_signal_direction_helpers() -> None:
    assert is_buy_signal(Signal.STRONG_BUY)
    assert not is_buy_signal(Signal.HOLD)
    assert is_sell_signal(Signal.SELL)
    assert not is_sell_signal(Signal.ULTRA_BUY)
