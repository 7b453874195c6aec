from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Literal, Optional

from .config import Settings, get_settings
from .models import ScreenerResult, ScreenerSettings
from .observability import record_pass
from .screener import ScreeningOrchestrator, assign_rankings, sort_symbols


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class SchedulerStatus:
    status: Literal["idle", "running", "paused", "stopped"]
    is_running: bool
    is_paused: bool
    last_run_at: datetime | None
    next_run_at: datetime | None
    last_success_at: datetime | None
    last_error: str | None
    consecutive_failures: int
    interval_seconds: float

    def as_dict(self) -> dict[str, object]:
        return {
            "status": self.status,
            "is_running": self.is_running,
            "is_paused": self.is_paused,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "next_run_at": self.next_run_at.isoformat() if self.next_run_at else None,
            "last_success_at": self.last_success_at.isoformat() if self.last_success_at else None,
            "last_error": self.last_error,
            "consecutive_failures": self.consecutive_failures,
            "interval_seconds": self.interval_seconds,
        }


class ScreenerScheduler:
    """
    asyncio loop that runs one screening pass per refresh interval.

    Each pass is bounded by ``pass_timeout_seconds``. A pass that fails or times
    out leaves the previously published result in place; the next scheduled pass
    is the retry.
    """

    def __init__(
        self,
        orchestrator: ScreeningOrchestrator,
        *,
        settings: Settings | None = None,
        screener_settings: ScreenerSettings | None = None,
        now_fn: Callable[[], datetime] | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._orchestrator = orchestrator
        self._screener_settings = screener_settings or self._settings.screener
        self._pass_timeout = self._settings.pass_timeout_seconds
        self._now = now_fn or _utcnow
        self._latest: ScreenerResult | None = None
        self._is_running = False
        self._is_paused = False
        self._state: Literal["idle", "running", "paused", "stopped"] = "stopped"
        self._last_run_at: datetime | None = None
        self._next_run_at: datetime | None = None
        self._last_success_at: datetime | None = None
        self._last_error: str | None = None
        self._consecutive_failures = 0
        self._loop_task: asyncio.Task[None] | None = None
        self._wake_event = asyncio.Event()
        self._resume_event = asyncio.Event()
        self._run_lock = asyncio.Lock()
        self._logger = logging.getLogger("screener.scheduler")

    @property
    def latest_result(self) -> ScreenerResult | None:
        return self._latest

    @property
    def screener_settings(self) -> ScreenerSettings:
        return self._screener_settings

    @property
    def interval(self) -> timedelta:
        return timedelta(seconds=self._screener_settings.refresh_interval_seconds)

    def update_settings(self, screener_settings: ScreenerSettings) -> bool:
        """
        Swap the settings used by later passes; returns True when an immediate pass was requested.

        A sort-only change re-orders and re-ranks the published result in place.
        """
        previous = self._screener_settings
        self._screener_settings = screener_settings
        refresh = previous.requires_refresh(screener_settings)
        if not refresh and self._latest is not None and previous.sort_changed(screener_settings):
            ordered = sort_symbols(
                self._latest.symbols,
                screener_settings.sort_column,
                screener_settings.sort_direction,
            )
            self._latest = replace(self._latest, symbols=tuple(assign_rankings(ordered)))
        if refresh and self._is_running:
            self._next_run_at = self._now()
            self._wake_event.set()
        return refresh

    async def start(self) -> None:
        if self._is_running:
            return
        self._is_running = True
        self._is_paused = False
        self._state = "idle"
        self._resume_event.set()
        # first pass runs immediately after start
        self._next_run_at = self._now()
        if self._loop_task is None or self._loop_task.done():
            self._loop_task = asyncio.create_task(self._run_loop(), name="screener-scheduler-loop")
        self._logger.info("Screener scheduler started (interval=%ss)", self.interval.total_seconds())

    async def stop(self) -> None:
        self._is_running = False
        self._is_paused = False
        self._wake_event.set()
        self._resume_event.set()
        if self._loop_task and not self._loop_task.done():
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:  # pragma: no cover - expected cancellation
                pass
        self._loop_task = None
        self._state = "stopped"
        self._logger.info("Screener scheduler stopped")

    async def pause(self) -> None:
        self._is_paused = True
        self._resume_event.clear()
        self._state = "paused"
        self._wake_event.set()

    async def resume(self) -> None:
        self._is_paused = False
        self._state = "idle" if self._is_running else "stopped"
        if self._is_running and self._next_run_at is None:
            self._schedule_next_run()
        self._resume_event.set()

    async def trigger_run(self, screener_settings: ScreenerSettings | None = None) -> ScreenerResult:
        """Run a pass now, outside the regular cadence."""
        return await self._execute_pass(screener_settings)

    def status(self) -> SchedulerStatus:
        return SchedulerStatus(
            status=self._state,
            is_running=self._is_running,
            is_paused=self._is_paused,
            last_run_at=self._last_run_at,
            next_run_at=self._next_run_at,
            last_success_at=self._last_success_at,
            last_error=self._last_error,
            consecutive_failures=self._consecutive_failures,
            interval_seconds=self.interval.total_seconds(),
        )

    async def _run_loop(self) -> None:
        try:
            while self._is_running:
                if self._is_paused:
                    await self._resume_event.wait()
                    continue

                now = self._now()
                if self._next_run_at is None:
                    self._schedule_next_run()
                wait_seconds = max((self._next_run_at - now).total_seconds(), 0.0)
                if wait_seconds > 0:
                    try:
                        await asyncio.wait_for(self._wake_event.wait(), timeout=wait_seconds)
                        self._wake_event.clear()
                        continue
                    except asyncio.TimeoutError:
                        pass
                self._wake_event.clear()
                await self._execute_pass()
        except asyncio.CancelledError:  # pragma: no cover - expected during shutdown
            pass

    async def _execute_pass(self, screener_settings: ScreenerSettings | None = None) -> ScreenerResult:
        async with self._run_lock:
            settings = screener_settings or self._screener_settings
            start = self._now()
            self._last_run_at = start
            previous_state = self._state
            self._state = "running"
            try:
                result = await asyncio.wait_for(self._orchestrator.run_pass(settings), timeout=self._pass_timeout)
            except asyncio.TimeoutError:
                record_pass("timeout")
                result = ScreenerResult.empty(error=f"pass exceeded {self._pass_timeout:g}s timeout")
            finally:
                self._state = "paused" if self._is_paused else ("idle" if self._is_running else previous_state)
                if self._is_running:
                    self._schedule_next_run(base=start)

            if result.failed:
                self._consecutive_failures += 1
                self._last_error = result.error
                self._logger.warning(
                    "Screening pass failed (%s consecutive): %s; keeping previous result",
                    self._consecutive_failures,
                    result.error,
                )
            else:
                self._consecutive_failures = 0
                self._last_error = None
                self._last_success_at = start
                self._latest = result

        # outside the pass timeout and the run lock: slow sinks never cost a result
        if not result.failed:
            await self._orchestrator.offer_alerts(result, settings)
        return result

    def _schedule_next_run(self, *, base: Optional[datetime] = None) -> None:
        reference = base or self._now()
        self._next_run_at = reference + self.interval


__all__ = ["SchedulerStatus", "ScreenerScheduler"]
