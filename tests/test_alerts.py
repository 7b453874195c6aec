from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from typing import List

import httpx
import pytest

from crypto_screener.alerts import (
    AlertDispatcher,
    DiscordWebhookSink,
    SignalAlert,
    TelegramAlertSink,
    build_alert_dispatcher,
    format_alert,
    parse_signals,
)
from crypto_screener.config import Settings
from crypto_screener.models import ScreenerResult, ScreenerSettings, Signal, Timeframe

from utils.market_data import make_screened, make_snapshot


class RecordingSink:
    name = "recording"

    def __init__(self) -> None:
        self.alerts: List[SignalAlert] = []

    async def send(self, alert: SignalAlert) -> None:
        self.alerts.append(alert)


class BrokenSink:
    name = "broken"

    async def send(self, alert: SignalAlert) -> None:
        raise httpx.ConnectError("refused")


def _alert(signal: Signal = Signal.ULTRA_BUY, *, restricted: bool = False) -> SignalAlert:
    return SignalAlert(
        symbol="BTCUSDT",
        signal=signal,
        price=65_000.5,
        timeframe="1h",
        rsi=24.5,
        rsi_mtf=55.25,
        rsi_htf=61.0,
        restricted=restricted,
    )


def _result() -> ScreenerResult:
    return ScreenerResult(
        symbols=(
            make_screened("BTCUSDT", signal=Signal.ULTRA_BUY, native=make_snapshot(rsi=24.0)),
            make_screened("ETHUSDT", signal=Signal.BUY),
            make_screened("SOLUSDT", signal=Signal.STRONG_SELL, mid=make_snapshot(rsi=42.0)),
        )
    )


def test_parse_signals_accepts_enum_names_and_values() -> None:
    assert parse_signals(["ultra_buy", "STRONG SELL", Signal.BUY]) == frozenset(
        {Signal.ULTRA_BUY, Signal.STRONG_SELL, Signal.BUY}
    )


def test_only_notable_signals_become_alerts() -> None:
    dispatcher = AlertDispatcher([RecordingSink()])
    settings = ScreenerSettings(timeframe=Timeframe.M15, restrict_universe=True)
    alerts = dispatcher.build_alerts(_result(), settings)

    assert [(alert.symbol, alert.signal) for alert in alerts] == [
        ("BTCUSDT", Signal.ULTRA_BUY),
        ("SOLUSDT", Signal.STRONG_SELL),
    ]
    assert alerts[0].timeframe == "15m"
    assert alerts[0].rsi == 24.0
    assert alerts[1].rsi_mtf == 42.0
    assert all(alert.restricted for alert in alerts)


def test_dispatch_reports_deliveries_and_survives_failing_sinks() -> None:
    async def scenario() -> None:
        recording = RecordingSink()
        dispatcher = AlertDispatcher([recording, BrokenSink()], notable_signals=["BUY"])
        sent = await dispatcher.dispatch(_result(), ScreenerSettings())
        assert sent == 1
        assert [alert.symbol for alert in recording.alerts] == ["ETHUSDT"]

    asyncio.run(scenario())


def test_dispatch_without_sinks_is_a_no_op() -> None:
    async def scenario() -> None:
        assert await AlertDispatcher().dispatch(_result(), ScreenerSettings()) == 0

    asyncio.run(scenario())


def test_format_alert_lists_all_timeframes() -> None:
    text = format_alert(_alert(restricted=True))
    assert "Symbol: *BTCUSDT* *RESTRICTED*" in text
    assert "Direction: *ULTRA BUY*" in text
    assert "RSI: 24.50" in text
    assert "RSI MTF: 55.25" in text
    assert "RSI HTF: 61.00" in text


def test_telegram_sink_posts_markdown_message() -> None:
    async def scenario() -> None:
        requests: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"ok": True})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        sink = TelegramAlertSink("123:abc", "-100", base_url="https://telegram.test", client=client)
        await sink.send(_alert())
        await sink.close()

        assert len(requests) == 1
        assert str(requests[0].url) == "https://telegram.test/bot123:abc/sendMessage"
        body = json.loads(requests[0].content)
        assert body["chat_id"] == "-100"
        assert body["parse_mode"] == "Markdown"
        assert "BTCUSDT" in body["text"]
        assert "tradingview.com/chart/?symbol=BTCUSDT.P" in body["text"]

    asyncio.run(scenario())


def test_discord_payload_colour_follows_direction() -> None:
    fixed = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    sink = DiscordWebhookSink(
        "https://discord.test/hook",
        client=httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(204))),
        now_fn=lambda: fixed,
    )
    buy = sink.build_payload(_alert(Signal.STRONG_BUY))["embeds"][0]
    sell = sink.build_payload(_alert(Signal.ULTRA_SELL))["embeds"][0]
    assert buy["color"] == 0x00FF00
    assert sell["color"] == 0xFF0000
    assert buy["timestamp"] == fixed.isoformat()
    assert "**BTCUSDT**" in buy["description"]


def test_discord_sink_raises_on_rejected_webhook() -> None:
    async def scenario() -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(400)))
        sink = DiscordWebhookSink("https://discord.test/hook", client=client)
        with pytest.raises(httpx.HTTPStatusError) as excinfo:
            await sink.send(_alert())
        await sink.close()
        assert excinfo.value.response.status_code == 400

    asyncio.run(scenario())


def test_build_alert_dispatcher_only_adds_configured_sinks() -> None:
    bare = build_alert_dispatcher(Settings(log_dir=None))
    assert bare.sinks == []

    configured = build_alert_dispatcher(
        Settings(
            log_dir=None,
            telegram_bot_token="token",
            telegram_chat_id="chat",
            discord_webhook_url="https://discord.test/hook",
        )
    )
    assert [sink.name for sink in configured.sinks] == ["telegram", "discord"]
