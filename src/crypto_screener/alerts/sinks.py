from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

import httpx

from ..signals import is_buy_signal, is_sell_signal
from .dispatcher import SignalAlert

TRADINGVIEW_CHART_URL = "https://www.tradingview.com/chart/?symbol={symbol}.P"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _direction_icon(alert: SignalAlert) -> str:
    if is_buy_signal(alert.signal):
        return "\U0001F7E2"
    if is_sell_signal(alert.signal):
        return "\U0001F534"
    return "⚪"


def format_alert(alert: SignalAlert, *, bold: str = "*") -> str:
    restricted = f" {bold}RESTRICTED{bold}" if alert.restricted else ""
    lines = [
        f"Symbol: {bold}{alert.symbol}{bold}{restricted}",
        f"Timeframe: {bold}{alert.timeframe}{bold}",
        f"Price: {alert.price}",
        f"{_direction_icon(alert)} Direction: {bold}{alert.signal.value.upper()}{bold}",
        f"RSI: {alert.rsi:.2f}",
        f"RSI MTF: {alert.rsi_mtf:.2f}",
        f"RSI HTF: {alert.rsi_htf:.2f}",
    ]
    return "\n".join(lines)


class TelegramAlertSink:
    name = "telegram"

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        *,
        base_url: str = "https://api.telegram.org",
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 5.0,
    ) -> None:
        self._url = f"{base_url.rstrip('/')}/bot{bot_token}/sendMessage"
        self._chat_id = chat_id
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    async def send(self, alert: SignalAlert) -> None:
        chart_url = TRADINGVIEW_CHART_URL.format(symbol=alert.symbol)
        text = f"*Crypto Signal Alert*\n{format_alert(alert)}\n[Open in TradingView]({chart_url})"
        response = await self._client.post(
            self._url,
            json={"chat_id": self._chat_id, "text": text, "parse_mode": "Markdown"},
        )
        response.raise_for_status()

    async def close(self) -> None:
        await self._client.aclose()


class DiscordWebhookSink:
    name = "discord"

    def __init__(
        self,
        webhook_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 5.0,
        now_fn: Callable[[], datetime] | None = None,
    ) -> None:
        self._webhook_url = webhook_url
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._now = now_fn or _utcnow

    def build_payload(self, alert: SignalAlert) -> dict[str, Any]:
        chart_url = TRADINGVIEW_CHART_URL.format(symbol=alert.symbol)
        return {
            "embeds": [
                {
                    "title": "Crypto Signal Alert",
                    "description": f"{format_alert(alert, bold='**')}\n[Open in TradingView]({chart_url})",
                    "color": 0x00FF00 if is_buy_signal(alert.signal) else 0xFF0000,
                    "timestamp": self._now().isoformat(),
                    "footer": {"text": "Signal Bot"},
                }
            ]
        }

    async def send(self, alert: SignalAlert) -> None:
        response = await self._client.post(self._webhook_url, json=self.build_payload(alert))
        response.raise_for_status()

    async def close(self) -> None:
        await self._client.aclose()


__all__ = ["DiscordWebhookSink", "TelegramAlertSink", "format_alert"]
