from __future__ import annotations

from typing import List

from ..config import Settings, get_settings
from .dispatcher import AlertDispatcher, AlertSink, DEFAULT_NOTABLE_SIGNALS, SignalAlert, parse_signals
from .sinks import DiscordWebhookSink, TelegramAlertSink, format_alert


def build_alert_dispatcher(settings: Settings | None = None) -> AlertDispatcher:
    settings = settings or get_settings()
    sinks: List[AlertSink] = []
    if settings.telegram_bot_token and settings.telegram_chat_id:
        sinks.append(
            TelegramAlertSink(
                settings.telegram_bot_token,
                settings.telegram_chat_id,
                base_url=settings.telegram_base_url,
                timeout_seconds=settings.alert_timeout_seconds,
            )
        )
    if settings.discord_webhook_url:
        sinks.append(DiscordWebhookSink(settings.discord_webhook_url, timeout_seconds=settings.alert_timeout_seconds))
    return AlertDispatcher(sinks, notable_signals=settings.notable_signals)


__all__ = [
    "AlertDispatcher",
    "AlertSink",
    "DEFAULT_NOTABLE_SIGNALS",
    "DiscordWebhookSink",
    "SignalAlert",
    "TelegramAlertSink",
    "build_alert_dispatcher",
    "format_alert",
    "parse_signals",
]
