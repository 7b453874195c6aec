from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, List, Protocol, Sequence

from ..models import ScreenerResult, ScreenerSettings, Signal
from ..observability import record_alert

DEFAULT_NOTABLE_SIGNALS: frozenset[Signal] = frozenset(
    {Signal.ULTRA_BUY, Signal.ULTRA_SELL, Signal.STRONG_BUY, Signal.STRONG_SELL}
)


@dataclass(slots=True, frozen=True)
class SignalAlert:
    symbol: str
    signal: Signal
    price: float
    timeframe: str
    rsi: float
    rsi_mtf: float
    rsi_htf: float
    restricted: bool = False


class AlertSink(Protocol):
    name: str

    async def send(self, alert: SignalAlert) -> None:
        ...


def parse_signals(values: Iterable[str | Signal]) -> frozenset[Signal]:
    signals = set()
    for value in values:
        if isinstance(value, Signal):
            signals.add(value)
            continue
        normalized = str(value).strip().upper().replace("_", " ")
        signals.add(Signal(normalized))
    return frozenset(signals)


class AlertDispatcher:
    """
    Offers notable signals from a finished pass to the configured delivery sinks.

    Delivery is fire-and-report: a failing sink is logged and counted but never
    raises back into the screening pass.
    """

    def __init__(
        self,
        sinks: Sequence[AlertSink] | None = None,
        *,
        notable_signals: Iterable[str | Signal] | None = None,
    ) -> None:
        self._sinks = list(sinks or [])
        self._notable = parse_signals(notable_signals) if notable_signals is not None else DEFAULT_NOTABLE_SIGNALS
        self._logger = logging.getLogger("screener.alerts.dispatcher")

    @property
    def sinks(self) -> List[AlertSink]:
        return list(self._sinks)

    def build_alerts(self, result: ScreenerResult, settings: ScreenerSettings) -> List[SignalAlert]:
        return [
            SignalAlert(
                symbol=item.symbol,
                signal=item.signal,
                price=item.price,
                timeframe=settings.timeframe.value,
                rsi=item.native.rsi,
                rsi_mtf=item.mid.rsi,
                rsi_htf=item.high.rsi,
                restricted=settings.restrict_universe,
            )
            for item in result.symbols
            if item.signal in self._notable
        ]

    async def dispatch(self, result: ScreenerResult, settings: ScreenerSettings) -> int:
        alerts = self.build_alerts(result, settings)
        if not alerts or not self._sinks:
            return 0
        deliveries = [(sink, alert) for alert in alerts for sink in self._sinks]
        outcomes = await asyncio.gather(
            *(sink.send(alert) for sink, alert in deliveries),
            return_exceptions=True,
        )
        sent = 0
        for (sink, alert), outcome in zip(deliveries, outcomes):
            if isinstance(outcome, Exception):
                record_alert("failed")
                self._logger.error(
                    "Alert delivery via %s failed for %s (%s): %s",
                    sink.name,
                    alert.symbol,
                    alert.signal.value,
                    outcome,
                )
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            record_alert("sent")
            sent += 1
        self._logger.info("Dispatched %s/%s signal alerts", sent, len(deliveries))
        return sent

    async def close(self) -> None:
        for sink in self._sinks:
            close = getattr(sink, "close", None)
            if close is None:
                continue
            try:
                await close()
            except Exception:  # pragma: no cover - best effort cleanup
                self._logger.debug("Failed to close alert sink %s", sink.name, exc_info=True)


__all__ = ["AlertDispatcher", "AlertSink", "DEFAULT_NOTABLE_SIGNALS", "SignalAlert", "parse_signals"]
